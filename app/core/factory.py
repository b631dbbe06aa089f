"""Component Factory for strategy instantiation.

Builds the fetcher, extractor, step registry and projection engine from
settings and hands out shared instances, so the extraction cache and the
HTTP connection pool live for the whole process.
"""

import logging

from app.core.config import Settings, get_settings
from app.interfaces.extractor import BasePropertyExtractor
from app.interfaces.fetcher import BasePageFetcher
from app.services.preview import PreviewCoordinator
from app.strategies.extractors import CssSelectorExtractor, ExtractionCache
from app.strategies.fetchers import AddressGuard, HttpxPageFetcher
from app.strategies.placeholder_engine import ProjectionEngine
from app.strategies.steps import StepRegistry, default_registry

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating component instances based on configuration.

    Example:
        ```python
        factory = ComponentFactory(get_settings())

        engine = factory.get_projection_engine()
        result = await engine.project(article, placeholders, properties)

        await factory.aclose()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._fetcher_cache: BasePageFetcher | None = None
        self._extraction_cache: ExtractionCache | None = None
        self._extractor_cache: BasePropertyExtractor | None = None
        self._registry_cache: StepRegistry | None = None
        self._engine_cache: ProjectionEngine | None = None
        self._preview_coordinator: PreviewCoordinator | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_fetcher(self) -> BasePageFetcher:
        """Get the shared page fetcher."""
        if self._fetcher_cache is None:
            logger.info(
                f"Instantiating page fetcher (timeout={self._settings.fetch_timeout_seconds}s, "
                f"retries={self._settings.fetch_max_retries})"
            )
            self._fetcher_cache = HttpxPageFetcher(
                timeout=self._settings.fetch_timeout_seconds,
                max_retries=self._settings.fetch_max_retries,
                user_agent=self._settings.fetch_user_agent,
                max_bytes=self._settings.fetch_max_bytes,
                address_guard=self.get_address_guard(),
            )
        return self._fetcher_cache

    def get_address_guard(self) -> AddressGuard | None:
        if not self._settings.fetch_block_private_addresses:
            logger.warning("Address checks for page fetches are disabled")
            return None
        return AddressGuard(allowed_hosts=self._settings.fetch_allowed_hosts)

    def get_extraction_cache(self) -> ExtractionCache:
        if self._extraction_cache is None:
            self._extraction_cache = ExtractionCache(
                ttl_seconds=self._settings.extraction_cache_ttl_seconds,
                max_entries=self._settings.extraction_cache_max_entries,
            )
        return self._extraction_cache

    def get_extractor(self) -> BasePropertyExtractor:
        """Get the shared external property extractor."""
        if self._extractor_cache is None:
            logger.info("Instantiating CSS selector extractor")
            self._extractor_cache = CssSelectorExtractor(
                fetcher=self.get_fetcher(),
                cache=self.get_extraction_cache(),
            )
        return self._extractor_cache

    def get_step_registry(self) -> StepRegistry:
        if self._registry_cache is None:
            self._registry_cache = default_registry()
            logger.debug(f"Step types available: {sorted(self._registry_cache.step_types)}")
        return self._registry_cache

    def get_projection_engine(self) -> ProjectionEngine:
        """Get the projection engine wired to the shared extractor.

        Returns:
            A ProjectionEngine instance.
        """
        if self._engine_cache is None:
            logger.info("Instantiating projection engine")
            self._engine_cache = ProjectionEngine(
                step_registry=self.get_step_registry(),
                extractor=self.get_extractor(),
                extraction_timeout=self._settings.extraction_timeout_seconds,
            )
        return self._engine_cache

    def get_preview_coordinator(self) -> PreviewCoordinator:
        if self._preview_coordinator is None:
            self._preview_coordinator = PreviewCoordinator()
        return self._preview_coordinator

    def clear_cache(self) -> None:
        """Forget all component instances.

        Open network resources are not closed here; call ``aclose`` for that.
        """
        self._fetcher_cache = None
        self._extraction_cache = None
        self._extractor_cache = None
        self._registry_cache = None
        self._engine_cache = None
        self._preview_coordinator = None
        logger.debug("Component factory cache cleared")

    async def aclose(self) -> None:
        """Close the fetcher's connection pool and drop cached components."""
        if self._fetcher_cache is not None:
            await self._fetcher_cache.aclose()
        self.clear_cache()


# Global factory instance
_factory: ComponentFactory | None = None


def get_factory() -> ComponentFactory:
    """Get or create the global ComponentFactory instance."""
    global _factory
    if _factory is None:
        _factory = ComponentFactory()
    return _factory
