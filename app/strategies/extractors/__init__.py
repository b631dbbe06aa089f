"""External property extraction strategies."""

from app.strategies.extractors.cache import ExtractionCache
from app.strategies.extractors.css_selector import (
    CssSelectorExtractor,
    compile_selector,
    select_value,
    split_selector,
)

__all__ = [
    "CssSelectorExtractor",
    "ExtractionCache",
    "compile_selector",
    "select_value",
    "split_selector",
]
