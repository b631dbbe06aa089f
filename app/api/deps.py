"""FastAPI dependencies for dependency injection.

Provides reusable dependencies for routes including:
- Database sessions
- The definition store
- Shared engine components from the factory
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.factory import ComponentFactory, get_factory
from app.db.repository import SqlDefinitionRepository
from app.db.session import get_async_session
from app.services.definition_store import DefinitionStore
from app.services.preview import PreviewCoordinator
from app.strategies.placeholder_engine.engine import ProjectionEngine

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    Yields:
        An async database session.

    Raises:
        HTTPException: 503 when the database cannot be reached.
    """
    try:
        async for session in get_async_session():
            yield session
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection error",
        ) from e


def get_component_factory() -> ComponentFactory:
    return get_factory()


def get_definition_store(
    session: AsyncSession = Depends(get_db),
    factory: ComponentFactory = Depends(get_component_factory),
) -> DefinitionStore:
    return DefinitionStore(
        repository=SqlDefinitionRepository(session),
        registry=factory.get_step_registry(),
    )


def get_projection_engine(
    factory: ComponentFactory = Depends(get_component_factory),
) -> ProjectionEngine:
    return factory.get_projection_engine()


def get_preview_coordinator(
    factory: ComponentFactory = Depends(get_component_factory),
) -> PreviewCoordinator:
    return factory.get_preview_coordinator()
