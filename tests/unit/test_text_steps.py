"""Unit tests for the parameterless text steps."""

import pytest

from app.core.exceptions import InvalidStepError
from app.strategies.placeholder_engine.models import LowercaseStep, UppercaseStep, UrlEncodeStep
from app.strategies.steps import LowercaseTransformer, UppercaseTransformer, UrlEncodeTransformer


class TestCaseSteps:
    def test_uppercase(self):
        assert UppercaseTransformer().apply("Hello, World", UppercaseStep()) == "HELLO, WORLD"

    def test_lowercase(self):
        assert LowercaseTransformer().apply("Hello, World", LowercaseStep()) == "hello, world"


class TestUrlEncode:
    @pytest.fixture
    def encode(self):
        transformer = UrlEncodeTransformer()
        return lambda value: transformer.apply(value, UrlEncodeStep())

    def test_reserved_characters(self, encode):
        assert encode("a b&c/d?e=f") == "a%20b%26c%2Fd%3Fe%3Df"

    def test_unreserved_characters_untouched(self, encode):
        assert encode("AZaz09-_.!~*'()") == "AZaz09-_.!~*'()"

    def test_non_ascii_is_utf8_encoded(self, encode):
        assert encode("é") == "%C3%A9"

    def test_empty(self, encode):
        assert encode("") == ""

    def test_lone_surrogate_is_a_step_error(self, encode):
        with pytest.raises(InvalidStepError):
            encode("a\ud800")
