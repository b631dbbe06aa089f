"""Database models, session management and repositories."""

from app.db.models import ConnectionFormat
from app.db.repository import SqlDefinitionRepository
from app.db.session import (
    AsyncSession,
    close_db,
    create_all_tables,
    get_async_session,
    init_db,
)

__all__ = [
    # Models
    "ConnectionFormat",
    # Repositories
    "SqlDefinitionRepository",
    # Session
    "AsyncSession",
    "get_async_session",
    "create_all_tables",
    "init_db",
    "close_db",
]
