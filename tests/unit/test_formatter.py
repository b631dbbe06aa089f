"""Unit tests for message template rendering."""

from app.strategies.placeholder_engine.formatter import referenced_keys, render_placeholders

ARTICLE = {
    "title": "Hello",
    "description": "",
    "custom::short": "Hi",
    "external::image": "https://example.com/a.png",
    "missing": None,
}


class TestRenderPlaceholders:
    def test_substitutes_keys(self):
        template = "{{title}} / {{custom::short}} / {{external::image}}"
        assert render_placeholders(template, ARTICLE) == "Hello / Hi / https://example.com/a.png"

    def test_unknown_and_null_keys_render_empty(self):
        assert render_placeholders("[{{nope}}][{{missing}}]", ARTICLE) == "[][]"

    def test_fallbacks(self):
        assert render_placeholders("{{description||custom::short}}", ARTICLE) == "Hi"
        assert render_placeholders("{{nope||text::Default}}", ARTICLE) == "Default"

    def test_whitespace_inside_braces(self):
        assert render_placeholders("{{ title }}", ARTICLE) == "Hello"

    def test_text_without_tokens(self):
        assert render_placeholders("plain {text}", ARTICLE) == "plain {text}"

    def test_referenced_keys(self):
        template = "{{title}} {{custom::short||text::x}} {{external::image}}"
        assert referenced_keys(template) == {"title", "custom::short", "external::image"}
