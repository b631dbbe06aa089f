"""FastAPI routers and dependencies."""

from app.api.connections import router as connections_router
from app.api.deps import (
    get_db,
    get_definition_store,
    get_preview_coordinator,
    get_projection_engine,
)

__all__ = [
    "connections_router",
    "get_db",
    "get_definition_store",
    "get_preview_coordinator",
    "get_projection_engine",
]
