"""Definition store.

Validates, normalizes and persists the custom placeholders and external
properties of a connection. Nothing reaches the repository unless the
whole submitted list validates.
"""

import logging
from collections.abc import Sequence

from app.core.exceptions import DefinitionValidationError
from app.interfaces.repository import BaseDefinitionRepository
from app.strategies.placeholder_engine.models import (
    ConnectionDefinitions,
    CustomPlaceholder,
    ExternalProperty,
)
from app.strategies.placeholder_engine.validation import (
    ValidationResult,
    normalize_custom_placeholders,
    validate_custom_placeholders,
    validate_definitions,
    validate_external_properties,
)
from app.strategies.steps.registry import StepRegistry, default_registry

logger = logging.getLogger(__name__)


class DefinitionStore:
    """Write boundary for connection definitions."""

    def __init__(
        self,
        repository: BaseDefinitionRepository,
        registry: StepRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._registry = registry or default_registry()

    async def get(self, feed_id: str, connection_id: str) -> ConnectionDefinitions:
        """Return saved definitions, empty when the connection has none."""
        saved = await self._repository.load(feed_id, connection_id)
        return saved if saved is not None else ConnectionDefinitions()

    def validate(self, definitions: ConnectionDefinitions) -> ValidationResult:
        """Dry-run validation of a pending definition set."""
        return validate_definitions(definitions, self._registry)

    async def save_custom_placeholders(
        self,
        feed_id: str,
        connection_id: str,
        placeholders: Sequence[CustomPlaceholder],
    ) -> ConnectionDefinitions:
        """Replace the saved custom placeholders of a connection.

        Raises:
            DefinitionValidationError: If any placeholder is invalid.
        """
        current = await self.get(feed_id, connection_id)
        normalized = normalize_custom_placeholders(placeholders, current.custom_placeholders)

        result = validate_custom_placeholders(normalized, self._registry)
        if not result.ok:
            logger.warning(
                f"Rejected custom placeholders for {feed_id}/{connection_id}: "
                f"{len(result.issues)} issue(s)"
            )
            raise DefinitionValidationError(result.issues)

        updated = current.model_copy(update={"custom_placeholders": normalized})
        saved = await self._repository.save(feed_id, connection_id, updated)
        logger.info(f"Saved {len(normalized)} custom placeholder(s) for {feed_id}/{connection_id}")
        return saved

    async def save_external_properties(
        self,
        feed_id: str,
        connection_id: str,
        properties: Sequence[ExternalProperty],
    ) -> ConnectionDefinitions:
        """Replace the saved external properties of a connection.

        Raises:
            DefinitionValidationError: If any property is invalid.
        """
        result = validate_external_properties(properties)
        if not result.ok:
            logger.warning(
                f"Rejected external properties for {feed_id}/{connection_id}: "
                f"{len(result.issues)} issue(s)"
            )
            raise DefinitionValidationError(result.issues)

        current = await self.get(feed_id, connection_id)
        updated = current.model_copy(update={"external_properties": list(properties)})
        saved = await self._repository.save(feed_id, connection_id, updated)
        logger.info(f"Saved {len(properties)} external propert(ies) for {feed_id}/{connection_id}")
        return saved
