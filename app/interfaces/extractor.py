"""Abstract base class for external property extraction strategies."""

from abc import ABC, abstractmethod


class BasePropertyExtractor(ABC):
    """Resolves one (url, selector) pair into a single string value."""

    @abstractmethod
    async def extract(self, url: str, css_selector: str) -> str:
        """Extract a value from the page at `url`.

        Args:
            url: Absolute http(s) URL taken from an article field.
            css_selector: Selector applied to the fetched document.

        Returns:
            The extracted text or attribute value.

        Raises:
            FetchError: If the page cannot be fetched (FetchTimeoutError on timeout).
            SelectorNoMatchError: If the selector matches nothing usable.
            InvalidSelectorError: If the selector cannot be parsed.
        """
        ...
