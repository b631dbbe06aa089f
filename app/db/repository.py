"""SQLModel-backed definition repository."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.db.models import ConnectionFormat
from app.interfaces.repository import BaseDefinitionRepository
from app.strategies.placeholder_engine.models import ConnectionDefinitions

logger = logging.getLogger(__name__)


class SqlDefinitionRepository(BaseDefinitionRepository):
    """Stores connection definitions in the ``connection_formats`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _find(self, feed_id: str, connection_id: str) -> ConnectionFormat | None:
        result = await self._session.execute(
            select(ConnectionFormat).where(
                ConnectionFormat.feed_id == feed_id,
                ConnectionFormat.connection_id == connection_id,
            )
        )
        return result.scalar_one_or_none()

    async def load(self, feed_id: str, connection_id: str) -> ConnectionDefinitions | None:
        row = await self._find(feed_id, connection_id)
        return row.to_definitions() if row is not None else None

    async def save(
        self,
        feed_id: str,
        connection_id: str,
        definitions: ConnectionDefinitions,
    ) -> ConnectionDefinitions:
        row = await self._find(feed_id, connection_id)
        if row is None:
            logger.info(f"Creating definition row for {feed_id}/{connection_id}")
            row = ConnectionFormat(feed_id=feed_id, connection_id=connection_id)

        row.apply_definitions(definitions)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)

        return row.to_definitions()
