"""httpx-based page fetcher.

Fetches pages referenced by article fields with a bounded timeout, a size
cap and a single automatic retry for transient failures.
"""

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from app.core.exceptions import BlockedAddressError, FetchError, FetchTimeoutError
from app.interfaces.fetcher import BasePageFetcher, FetchedPage
from app.strategies.fetchers.address_guard import AddressGuard

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def is_transient(exc: BaseException) -> bool:
    """Timeouts, network errors, 429 and 5xx responses are worth one more try."""
    if isinstance(exc, FetchTimeoutError):
        return True
    if isinstance(exc, BlockedAddressError):
        return False
    if isinstance(exc, FetchError):
        return exc.status_code is None or exc.status_code == 429 or exc.status_code >= 500
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.info(f"Retrying fetch (attempt {retry_state.attempt_number + 1}): {exc}")


class HttpxPageFetcher(BasePageFetcher):
    """Page fetcher built on a shared `httpx.AsyncClient`.

    Attributes:
        max_retries: Automatic retries after the first attempt.
        max_bytes: Response bodies are truncated to this many bytes.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        max_retries: int = 1,
        user_agent: str = "FeedFormatEngine/0.1",
        max_bytes: int = 2 * 1024 * 1024,
        retry_wait_seconds: float = 0.5,
        address_guard: AddressGuard | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds.
            max_retries: Retries for transient failures.
            user_agent: User-Agent header value.
            max_bytes: Size cap for response bodies.
            retry_wait_seconds: Pause before a retry.
            address_guard: Request hook vetting every outgoing URL, redirects included.
            transport: Optional transport override (used by tests).
        """
        self.max_retries = max_retries
        self.max_bytes = max_bytes
        self._retry_wait_seconds = retry_wait_seconds
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": user_agent, "Accept": DEFAULT_ACCEPT},
            transport=transport,
            event_hooks={"request": [address_guard]} if address_guard is not None else None,
        )

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a page, retrying transient failures.

        Args:
            url: Absolute http(s) URL.

        Returns:
            The fetched page.

        Raises:
            FetchTimeoutError: If every attempt timed out.
            BlockedAddressError: If a request or redirect targets a non-public host.
            FetchError: On network failure or a non-2xx response.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self._retry_wait_seconds),
            retry=retry_if_exception(is_transient),
            before_sleep=_log_retry,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                page = await self._fetch_once(url)
        return page

    async def _fetch_once(self, url: str) -> FetchedPage:
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise FetchError(url, f"HTTP {response.status_code}", response.status_code)

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self.max_bytes:
                        logger.warning(f"Response from {url} exceeds {self.max_bytes} bytes, truncating")
                        del body[self.max_bytes :]
                        break

                encoding = response.charset_encoding or "utf-8"
                page = FetchedPage(
                    url=str(response.url),
                    status_code=response.status_code,
                    text=bytes(body).decode(encoding, errors="replace"),
                    content_type=response.headers.get("content-type"),
                )

        except httpx.TimeoutException as e:
            raise FetchTimeoutError(url, "request timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e
        except LookupError as e:
            # Unknown charset in Content-Type
            raise FetchError(url, f"cannot decode response: {e}") from e

        logger.debug(f"Fetched {page.url} ({page.status_code}, {len(page.text)} chars)")
        return page

    async def aclose(self) -> None:
        await self._client.aclose()
