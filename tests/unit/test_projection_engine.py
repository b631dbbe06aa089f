"""Unit tests for the projection engine."""

import asyncio
import time

import pytest

from app.core.exceptions import FetchError
from app.interfaces.step import BaseStepTransformer
from app.strategies.extractors import CssSelectorExtractor
from app.strategies.placeholder_engine.engine import ProjectionEngine, is_well_formed_url
from app.strategies.placeholder_engine.models import (
    CustomPlaceholder,
    DefinitionType,
    ExternalProperty,
    FailureKind,
    LowercaseStep,
    RegexStep,
    UppercaseStep,
    UrlEncodeStep,
)
from app.strategies.steps import default_registry
from tests.conftest import ARTICLE_PAGE, StubFetcher


def regex(pattern: str, replacement: str = "", flags: str = "gi") -> RegexStep:
    return RegexStep(regex_search=pattern, replacement_string=replacement, regex_search_flags=flags)


def custom(name: str, source: str, *steps) -> CustomPlaceholder:
    return CustomPlaceholder(reference_name=name, source_placeholder=source, steps=list(steps))


def external(label: str, selector: str, source: str = "link") -> ExternalProperty:
    return ExternalProperty(source_field=source, css_selector=selector, label=label)


class TestCustomPlaceholders:
    """Projection through custom placeholders."""

    def test_identity_without_definitions(self, engine, article):
        result = asyncio.run(engine.project(article))

        assert result.article == article
        assert result.failures == []

    def test_source_article_is_not_modified(self, engine, article):
        snapshot = dict(article)
        asyncio.run(engine.project(article, [custom("x", "title", UppercaseStep())]))
        assert article == snapshot

    def test_banana(self, engine, article):
        result = asyncio.run(engine.project(article, [custom("b", "title", regex("a", "b"))]))
        assert result.article["custom::b"] == "bbnbnb"
        assert result.article["title"] == "banana"

    def test_step_order_matters(self, engine, article):
        replace_then_upper = custom("one", "title", regex("a", "b", flags="g"), UppercaseStep())
        upper_then_replace = custom("two", "title", UppercaseStep(), regex("a", "b", flags="g"))

        result = asyncio.run(engine.project(article, [replace_then_upper, upper_then_replace]))

        assert result.article["custom::one"] == "BBNBNB"
        assert result.article["custom::two"] == "BANANA"

    def test_projection_is_idempotent(self, engine, article):
        placeholders = [custom("short", "description", regex(r"\n.*", ""))]
        properties = [external("summary", "div.summary")]

        first = asyncio.run(engine.project(article, placeholders, properties))
        second = asyncio.run(engine.project(article, placeholders, properties))

        assert first == second

    def test_missing_source_field_starts_empty(self, engine, article):
        result = asyncio.run(engine.project(article, [custom("x", "nope", regex("^$", "fallback"))]))

        assert result.article["custom::x"] == "fallback"
        assert result.failures == []

    def test_incomplete_placeholder_is_skipped(self, engine, article):
        result = asyncio.run(engine.project(article, [custom("", "title", UppercaseStep())]))

        assert result.article == article
        assert result.failures == []

    def test_invalid_pattern_degrades_one_placeholder(self, engine, article):
        broken = custom("broken", "title", regex("(unclosed"))
        healthy = custom("healthy", "title", UppercaseStep())

        result = asyncio.run(engine.project(article, [broken, healthy]))

        assert "custom::broken" not in result.article
        assert result.article["custom::healthy"] == "BANANA"
        [failure] = result.failures
        assert failure.definition_id == broken.id
        assert failure.definition_type == DefinitionType.CUSTOM_PLACEHOLDER
        assert failure.kind == FailureKind.INVALID_PATTERN

    def test_unencodable_value_degrades_one_placeholder(self, engine):
        article = {"id": "a1", "title": "a\ud800"}
        healthy = custom("ok", "title", regex("a", "b"))
        encoded = custom("encoded", "title", UrlEncodeStep())

        result = asyncio.run(engine.project(article, [healthy, encoded]))

        assert result.article["custom::ok"] == "b\ud800"
        assert "custom::encoded" not in result.article
        [failure] = result.failures
        assert failure.definition_id == encoded.id
        assert failure.kind == FailureKind.STEP_ERROR

    def test_unexpected_step_exception_degrades_one_placeholder(self, article):
        class ExplodingTransformer(BaseStepTransformer):
            step_type = "LOWERCASE"

            def apply(self, value, step):
                raise RuntimeError("boom")

        registry = default_registry()
        registry.register(ExplodingTransformer())
        engine = ProjectionEngine(step_registry=registry)
        exploding = custom("exploding", "title", LowercaseStep())
        healthy = custom("healthy", "title", UppercaseStep())

        result = asyncio.run(engine.project(article, [exploding, healthy]))

        assert result.article["custom::healthy"] == "BANANA"
        [failure] = result.failures
        assert failure.definition_id == exploding.id
        assert failure.kind == FailureKind.STEP_ERROR
        assert "boom" in failure.message


class TestExternalProperties:
    """Projection through external properties."""

    def test_text_and_attribute(self, engine, article):
        properties = [
            external("summary", "div.summary"),
            external("image", "meta[property='og:image']::attr(content)"),
        ]
        result = asyncio.run(engine.project(article, external_properties=properties))

        assert result.article["external::summary"] == "A short summary"
        assert result.article["external::image"] == "/images/cover.png"
        assert result.failures == []

    def test_unreachable_url_yields_one_failure(self, article):
        fetcher = StubFetcher({article["link"]: FetchError(article["link"], "connection refused")})
        engine = ProjectionEngine(extractor=CssSelectorExtractor(fetcher))
        prop = external("summary", "div.summary")

        result = asyncio.run(engine.project(article, [custom("t", "title", UppercaseStep())], [prop]))

        assert "external::summary" not in result.article
        assert result.article["custom::t"] == "BANANA"
        assert len(result.failures) == 1
        assert result.failures[0].kind == FailureKind.FETCH_ERROR
        assert result.failures[0].definition_id == prop.id
        assert result.failures[0].definition_type == DefinitionType.EXTERNAL_PROPERTY

    def test_selector_without_match(self, engine, article):
        result = asyncio.run(engine.project(article, external_properties=[external("x", "table.none")]))

        [failure] = result.failures
        assert failure.kind == FailureKind.SELECTOR_NO_MATCH

    def test_invalid_selector(self, engine, article, fetcher):
        result = asyncio.run(engine.project(article, external_properties=[external("x", "div[")]))

        [failure] = result.failures
        assert failure.kind == FailureKind.INVALID_SELECTOR
        assert fetcher.calls == []

    @pytest.mark.parametrize("source", ["nope", "empty", "title"])
    def test_missing_or_non_url_source_is_skipped(self, engine, article, fetcher, source):
        result = asyncio.run(
            engine.project(article, external_properties=[external("x", "div.summary", source=source)])
        )

        assert "external::x" not in result.article
        assert result.failures == []
        assert fetcher.calls == []

    def test_timeout(self, article):
        fetcher = StubFetcher({article["link"]: ARTICLE_PAGE}, delay=1.0)
        engine = ProjectionEngine(extractor=CssSelectorExtractor(fetcher), extraction_timeout=0.05)

        result = asyncio.run(engine.project(article, external_properties=[external("x", "div.summary")]))

        [failure] = result.failures
        assert failure.kind == FailureKind.TIMEOUT

    def test_fetches_run_concurrently(self, article):
        urls = [f"https://news.example.com/posts/{i}" for i in range(4)]
        fetcher = StubFetcher({url: ARTICLE_PAGE for url in urls}, delay=0.3)
        engine = ProjectionEngine(extractor=CssSelectorExtractor(fetcher))
        record = {**article, **{f"link{i}": url for i, url in enumerate(urls)}}
        properties = [external(f"p{i}", "div.summary", source=f"link{i}") for i in range(4)]

        started = time.perf_counter()
        result = asyncio.run(engine.project(record, external_properties=properties))
        elapsed = time.perf_counter() - started

        assert all(result.article[f"external::p{i}"] == "A short summary" for i in range(4))
        assert elapsed < 0.9

    def test_custom_placeholder_can_read_external_value(self, engine, article):
        properties = [external("author", "a.author")]
        placeholders = [custom("author", "external::author", UppercaseStep())]

        result = asyncio.run(engine.project(article, placeholders, properties))

        assert result.article["custom::author"] == "JANE"

    def test_without_extractor_properties_are_skipped(self, article):
        engine = ProjectionEngine()
        result = asyncio.run(engine.project(article, external_properties=[external("x", "div.summary")]))

        assert result.article == article
        assert result.failures == []


class TestUrlCheck:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("https://example.com/a", True),
            ("http://example.com", True),
            (" https://example.com/a ", True),
            ("ftp://example.com/file", False),
            ("/relative/path", False),
            ("banana", False),
        ],
    )
    def test_is_well_formed_url(self, value, expected):
        assert is_well_formed_url(value) is expected
