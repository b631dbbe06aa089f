"""Abstract base classes for the pluggable parts of the placeholder pipeline."""

from app.interfaces.extractor import BasePropertyExtractor
from app.interfaces.fetcher import BasePageFetcher, FetchedPage
from app.interfaces.repository import BaseDefinitionRepository
from app.interfaces.step import BaseStepTransformer

__all__ = [
    "BasePageFetcher",
    "FetchedPage",
    "BasePropertyExtractor",
    "BaseStepTransformer",
    "BaseDefinitionRepository",
]
