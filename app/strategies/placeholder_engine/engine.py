"""Article projection engine.

Builds the augmented article used for delivery and previews: the original
fields, plus `external::<label>` values scraped from linked pages, plus
`custom::<referenceName>` values derived through placeholder steps.

Broken or incomplete definitions never abort a projection. Incomplete ones
are skipped silently; the others are reported as failures.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping
from urllib.parse import urlparse

from app.core.exceptions import (
    DefinitionError,
    FetchError,
    FetchTimeoutError,
    InvalidPatternError,
    InvalidSelectorError,
    MissingSourceFieldError,
    SelectorNoMatchError,
)
from app.interfaces.extractor import BasePropertyExtractor
from app.strategies.placeholder_engine.models import (
    Article,
    CustomPlaceholder,
    DefinitionType,
    ExternalProperty,
    FailureKind,
    ProjectionFailure,
    ProjectionResult,
)
from app.strategies.steps.registry import StepRegistry, default_registry

logger = logging.getLogger(__name__)


def is_well_formed_url(value: str) -> bool:
    """Return True for absolute http(s) URLs."""
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def source_value(article: Mapping[str, str | None], field: str) -> str:
    """Read an article field.

    Raises:
        MissingSourceFieldError: If the field is absent, null or empty.
    """
    value = article.get(field)
    if not value:
        raise MissingSourceFieldError(field)
    return value


class ProjectionEngine:
    """Projects articles through custom placeholders and external properties.

    Attributes:
        extraction_timeout: Upper bound in seconds for one external property.
    """

    def __init__(
        self,
        step_registry: StepRegistry | None = None,
        extractor: BasePropertyExtractor | None = None,
        extraction_timeout: float = 8.0,
    ) -> None:
        """Initialize the engine.

        Args:
            step_registry: Transformers for placeholder steps.
            extractor: Extractor for external properties. Without one,
                external properties are skipped.
            extraction_timeout: Per-property timeout, retries included.
        """
        self._registry = step_registry or default_registry()
        self._extractor = extractor
        self.extraction_timeout = extraction_timeout

    async def project(
        self,
        article: Article,
        custom_placeholders: Iterable[CustomPlaceholder] = (),
        external_properties: Iterable[ExternalProperty] = (),
    ) -> ProjectionResult:
        """Produce the augmented article.

        External properties are resolved first so custom placeholders may
        use an `external::` key as their source.

        Args:
            article: Raw article record; never modified.
            custom_placeholders: Placeholder definitions in effect.
            external_properties: External property definitions in effect.

        Returns:
            The augmented article and the per-definition failures.
        """
        augmented: dict[str, str | None] = dict(article)

        external_values, failures = await self.resolve_external_properties(
            article, external_properties
        )
        augmented.update(external_values)

        custom_values, custom_failures = self.apply_custom_placeholders(
            augmented, custom_placeholders
        )
        augmented.update(custom_values)
        failures.extend(custom_failures)

        if failures:
            logger.info(
                f"Projected article {article.get('id')} with {len(failures)} degraded definition(s)"
            )
        return ProjectionResult(article=augmented, failures=failures)

    # =========================================================================
    # Custom Placeholders
    # =========================================================================

    def evaluate_placeholder(self, article: Mapping[str, str | None], placeholder: CustomPlaceholder) -> str:
        """Run a placeholder's steps in order over its source field.

        A missing source field starts the chain with an empty string.

        Raises:
            DefinitionError: If a step cannot be applied.
        """
        try:
            value = source_value(article, placeholder.source_placeholder)
        except MissingSourceFieldError:
            value = ""

        for step in placeholder.steps:
            value = self._registry.apply(value, step)
        return value

    def apply_custom_placeholders(
        self,
        article: Mapping[str, str | None],
        placeholders: Iterable[CustomPlaceholder],
    ) -> tuple[dict[str, str], list[ProjectionFailure]]:
        """Evaluate every complete placeholder independently.

        Returns:
            Derived `custom::` values and failures for broken placeholders.
        """
        values: dict[str, str] = {}
        failures: list[ProjectionFailure] = []

        for placeholder in placeholders:
            if not placeholder.is_complete:
                logger.debug(f"Skipping incomplete custom placeholder {placeholder.id}")
                continue

            try:
                values[placeholder.output_key] = self.evaluate_placeholder(article, placeholder)
            except InvalidPatternError as e:
                logger.warning(f"Custom placeholder {placeholder.id} has an invalid pattern: {e}")
                failures.append(_failure(placeholder.id, DefinitionType.CUSTOM_PLACEHOLDER, FailureKind.INVALID_PATTERN, e))
            except DefinitionError as e:
                logger.warning(f"Custom placeholder {placeholder.id} failed: {e}")
                failures.append(_failure(placeholder.id, DefinitionType.CUSTOM_PLACEHOLDER, FailureKind.STEP_ERROR, e))
            except Exception as e:
                logger.error(f"Unexpected error in custom placeholder {placeholder.id}: {e}", exc_info=True)
                failures.append(_failure(placeholder.id, DefinitionType.CUSTOM_PLACEHOLDER, FailureKind.STEP_ERROR, e))

        return values, failures

    # =========================================================================
    # External Properties
    # =========================================================================

    async def resolve_external_properties(
        self,
        article: Mapping[str, str | None],
        properties: Iterable[ExternalProperty],
    ) -> tuple[dict[str, str], list[ProjectionFailure]]:
        """Resolve every usable external property concurrently.

        Properties whose source field is missing or not a URL are skipped
        without a failure entry.

        Returns:
            Derived `external::` values and failures for the rest.
        """
        targets: list[tuple[ExternalProperty, str]] = []
        for prop in properties:
            if not prop.is_complete:
                logger.debug(f"Skipping incomplete external property {prop.id}")
                continue
            try:
                url = source_value(article, prop.source_field).strip()
            except MissingSourceFieldError:
                logger.debug(f"External property {prop.id}: article has no '{prop.source_field}'")
                continue
            if not is_well_formed_url(url):
                logger.debug(f"External property {prop.id}: '{prop.source_field}' is not a URL")
                continue
            targets.append((prop, url))

        if not targets:
            return {}, []

        if self._extractor is None:
            logger.warning(f"No extractor configured, skipping {len(targets)} external properties")
            return {}, []

        outcomes = await asyncio.gather(
            *(self._resolve_one(prop, url) for prop, url in targets)
        )

        values: dict[str, str] = {}
        failures: list[ProjectionFailure] = []
        for prop, value, failure in outcomes:
            if failure is not None:
                failures.append(failure)
            elif value is not None:
                values[prop.output_key] = value
        return values, failures

    async def _resolve_one(
        self, prop: ExternalProperty, url: str
    ) -> tuple[ExternalProperty, str | None, ProjectionFailure | None]:
        kind: FailureKind
        error: BaseException
        try:
            async with asyncio.timeout(self.extraction_timeout):
                value = await self._extractor.extract(url, prop.css_selector)
            return prop, value, None
        except TimeoutError:
            kind = FailureKind.TIMEOUT
            error = FetchTimeoutError(url, f"no result within {self.extraction_timeout}s")
        except FetchTimeoutError as e:
            kind, error = FailureKind.TIMEOUT, e
        except FetchError as e:
            kind, error = FailureKind.FETCH_ERROR, e
        except SelectorNoMatchError as e:
            kind, error = FailureKind.SELECTOR_NO_MATCH, e
        except InvalidSelectorError as e:
            kind, error = FailureKind.INVALID_SELECTOR, e
        except Exception as e:
            logger.error(f"Unexpected error extracting {prop.id} from {url}: {e}", exc_info=True)
            kind, error = FailureKind.FETCH_ERROR, e

        logger.info(f"External property {prop.id} omitted ({kind.value}): {error}")
        return prop, None, _failure(prop.id, DefinitionType.EXTERNAL_PROPERTY, kind, error)


def _failure(
    definition_id: str,
    definition_type: DefinitionType,
    kind: FailureKind,
    error: BaseException,
) -> ProjectionFailure:
    return ProjectionFailure(
        definition_id=definition_id,
        definition_type=definition_type,
        kind=kind,
        message=str(error) or error.__class__.__name__,
    )
