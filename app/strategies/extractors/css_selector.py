"""CSS selector extractor for external properties.

Fetches the page linked from an article field and pulls one value out of it.

Selector syntax:
    'div.summary'           -> text of the first matching element
    'img.hero::attr(src)'   -> attribute of the first matching element

When several elements match, the first one in document order wins.
"""

import asyncio
import logging
import re
from functools import lru_cache
from urllib.parse import urljoin

import soupsieve
from bs4 import BeautifulSoup

from app.core.exceptions import InvalidSelectorError, SelectorNoMatchError
from app.interfaces.extractor import BasePropertyExtractor
from app.interfaces.fetcher import BasePageFetcher
from app.strategies.extractors.cache import ExtractionCache

logger = logging.getLogger(__name__)

_ATTR_SUFFIX = re.compile(r"::attr\(\s*([^()\s]+)\s*\)\s*$")

# Attributes holding links that should be made absolute
_URL_ATTRIBUTES = {"href", "src", "poster", "data-src"}


def split_selector(selector: str) -> tuple[str, str | None]:
    """Split a selector into its CSS part and optional attribute name.

    Examples:
        'a::attr(href)' -> ('a', 'href')
        '.foo .bar'     -> ('.foo .bar', None)
    """
    match = _ATTR_SUFFIX.search(selector)
    if match is None:
        return selector.strip(), None
    return selector[: match.start()].strip(), match.group(1)


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> tuple[soupsieve.SoupSieve, str | None]:
    """Compile a selector, raising InvalidSelectorError when it does not parse."""
    css, attr = split_selector(selector)
    if not css:
        raise InvalidSelectorError(selector, "selector is empty")
    try:
        return soupsieve.compile(css), attr
    except soupsieve.SelectorSyntaxError as e:
        raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e


def select_value(html: str, selector: str, base_url: str) -> str:
    """Apply a selector to an HTML document.

    Args:
        html: The page source.
        selector: CSS selector, optionally ending in ::attr(name).
        base_url: URL of the page, used to resolve relative links.

    Returns:
        Collapsed element text, or the attribute value.

    Raises:
        InvalidSelectorError: If the selector does not parse.
        SelectorNoMatchError: If nothing usable matched.
    """
    compiled, attr = compile_selector(selector)
    soup = BeautifulSoup(html, "lxml")

    element = compiled.select_one(soup)
    if element is None:
        raise SelectorNoMatchError(base_url, selector)

    if attr is not None:
        value = element.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        if not value or not value.strip():
            raise SelectorNoMatchError(base_url, selector, f"matched element has no '{attr}' attribute")
        value = value.strip()
        if attr in _URL_ATTRIBUTES:
            value = urljoin(base_url, value)
        return value

    text = " ".join(element.get_text(" ", strip=True).split())
    if not text:
        raise SelectorNoMatchError(base_url, selector, "matched element has no text")
    return text


class CssSelectorExtractor(BasePropertyExtractor):
    """Extracts values from linked pages with CSS selectors.

    Results are memoized per (url, selector) when a cache is supplied, so
    toggling a preview does not refetch the same pages.
    """

    def __init__(self, fetcher: BasePageFetcher, cache: ExtractionCache | None = None) -> None:
        self._fetcher = fetcher
        self._cache = cache

    async def extract(self, url: str, css_selector: str) -> str:
        # Fail fast on bad selectors before touching the network
        compile_selector(css_selector)

        if self._cache is None:
            return await self._extract_uncached(url, css_selector)
        return await self._cache.get_or_compute(
            (url, css_selector),
            lambda: self._extract_uncached(url, css_selector),
        )

    async def _extract_uncached(self, url: str, css_selector: str) -> str:
        page = await self._fetcher.fetch(url)
        # Parsing is CPU bound; keep it off the event loop
        value = await asyncio.to_thread(select_value, page.text, css_selector, page.url)
        logger.debug(f"Extracted {len(value)} chars from {url} with '{css_selector}'")
        return value
