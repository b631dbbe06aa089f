"""Abstract base class for definition persistence.

Keeps the definition store independent of the database layer.
"""

from abc import ABC, abstractmethod

from app.strategies.placeholder_engine.models import ConnectionDefinitions


class BaseDefinitionRepository(ABC):
    """Loads and stores the saved definitions of a connection."""

    @abstractmethod
    async def load(self, feed_id: str, connection_id: str) -> ConnectionDefinitions | None:
        """Load saved definitions.

        Returns:
            The saved definitions, or None when the connection has none yet.
        """
        ...

    @abstractmethod
    async def save(
        self,
        feed_id: str,
        connection_id: str,
        definitions: ConnectionDefinitions,
    ) -> ConnectionDefinitions:
        """Persist definitions, replacing any previous version.

        Returns:
            The definitions as stored.
        """
        ...
