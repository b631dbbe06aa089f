"""Parameterless text steps: case conversion and URL encoding."""

from typing import Any
from urllib.parse import quote

from app.core.exceptions import InvalidStepError
from app.interfaces.step import BaseStepTransformer

# Characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"


class UppercaseTransformer(BaseStepTransformer):
    step_type = "UPPERCASE"

    def apply(self, value: str, step: Any) -> str:
        return value.upper()


class LowercaseTransformer(BaseStepTransformer):
    step_type = "LOWERCASE"

    def apply(self, value: str, step: Any) -> str:
        return value.lower()


class UrlEncodeTransformer(BaseStepTransformer):
    """Percent-encodes UTF-8 bytes the way encodeURIComponent does."""

    step_type = "URL_ENCODE"

    def apply(self, value: str, step: Any) -> str:
        try:
            return quote(value, safe=_URI_COMPONENT_SAFE)
        except UnicodeEncodeError as e:
            # Lone surrogates have no UTF-8 form
            raise InvalidStepError(f"Cannot URL-encode value: {e.reason} at position {e.start}") from e
