"""Shared fixtures: in-memory persistence and a scripted page fetcher."""

import asyncio
import os

# Keep test runs from writing logs/ files
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from app.interfaces.fetcher import BasePageFetcher, FetchedPage
from app.interfaces.repository import BaseDefinitionRepository
from app.strategies.extractors import CssSelectorExtractor, ExtractionCache
from app.strategies.placeholder_engine.engine import ProjectionEngine
from app.strategies.placeholder_engine.models import ConnectionDefinitions


class InMemoryDefinitionRepository(BaseDefinitionRepository):
    """Dictionary-backed repository that stores deep copies."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], ConnectionDefinitions] = {}
        self.saves = 0

    async def load(self, feed_id: str, connection_id: str) -> ConnectionDefinitions | None:
        row = self.rows.get((feed_id, connection_id))
        return row.model_copy(deep=True) if row is not None else None

    async def save(
        self,
        feed_id: str,
        connection_id: str,
        definitions: ConnectionDefinitions,
    ) -> ConnectionDefinitions:
        self.saves += 1
        self.rows[(feed_id, connection_id)] = definitions.model_copy(deep=True)
        return definitions.model_copy(deep=True)


class StubFetcher(BasePageFetcher):
    """Serves canned pages, optionally after a delay.

    Values in `pages` are HTML strings or exceptions to raise.
    """

    def __init__(self, pages: dict[str, str | Exception] | None = None, delay: float = 0.0) -> None:
        self.pages = pages or {}
        self.delay = delay
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        page = self.pages.get(url)
        if page is None:
            from app.core.exceptions import FetchError

            raise FetchError(url, "HTTP 404", 404)
        if isinstance(page, Exception):
            raise page
        return FetchedPage(url=url, status_code=200, text=page, content_type="text/html")


ARTICLE_PAGE = """
<html>
  <head><meta property="og:image" content="/images/cover.png"></head>
  <body>
    <div class="summary">  A short
      <b>summary</b> </div>
    <p class="tag">first</p>
    <p class="tag">second</p>
    <a class="author" href="/authors/jane">Jane</a>
  </body>
</html>
"""


@pytest.fixture
def article() -> dict[str, str | None]:
    return {
        "id": "article-1",
        "title": "banana",
        "description": "Line one\nLine two",
        "link": "https://news.example.com/posts/1",
        "empty": "",
    }


@pytest.fixture
def fetcher() -> StubFetcher:
    return StubFetcher({"https://news.example.com/posts/1": ARTICLE_PAGE})


@pytest.fixture
def repository() -> InMemoryDefinitionRepository:
    return InMemoryDefinitionRepository()


@pytest.fixture
def engine(fetcher: StubFetcher) -> ProjectionEngine:
    return ProjectionEngine(
        extractor=CssSelectorExtractor(fetcher, ExtractionCache()),
        extraction_timeout=2.0,
    )
