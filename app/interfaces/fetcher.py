"""Abstract base class for page fetching strategies.

The Strategy Pattern allows the HTTP client used for external
properties to be swapped (e.g., for a stub in tests).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FetchedPage:
    """A fetched web page.

    Attributes:
        url: Final URL after redirects.
        status_code: HTTP status code of the final response.
        text: Decoded response body.
        content_type: Value of the Content-Type header, if any.
    """

    url: str
    status_code: int
    text: str
    content_type: str | None = None


class BasePageFetcher(ABC):
    """Abstract base class for page fetching strategies.

    Example:
        ```python
        class HttpxPageFetcher(BasePageFetcher):
            async def fetch(self, url: str) -> FetchedPage:
                # Issue GET request
                pass
        ```
    """

    @abstractmethod
    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a page.

        Args:
            url: Absolute http(s) URL.

        Returns:
            The fetched page.

        Raises:
            FetchTimeoutError: If the request timed out.
            FetchError: On network failure or a non-2xx response.
        """
        ...

    async def aclose(self) -> None:
        """Release any network resources held by the fetcher."""
        return None
