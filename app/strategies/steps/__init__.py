"""Custom placeholder step transformers."""

from app.strategies.steps.regex import RegexStepTransformer, compile_js_regex
from app.strategies.steps.registry import StepRegistry, default_registry
from app.strategies.steps.text import (
    LowercaseTransformer,
    UppercaseTransformer,
    UrlEncodeTransformer,
)

__all__ = [
    "RegexStepTransformer",
    "UppercaseTransformer",
    "LowercaseTransformer",
    "UrlEncodeTransformer",
    "StepRegistry",
    "compile_js_regex",
    "default_registry",
]
