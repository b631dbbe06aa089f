"""Placeholder engine.

Projects raw feed articles through custom placeholders and external
properties, and renders message templates against the result.
"""

from app.strategies.placeholder_engine.engine import ProjectionEngine
from app.strategies.placeholder_engine.formatter import render_placeholders
from app.strategies.placeholder_engine.models import (
    ConnectionDefinitions,
    CustomPlaceholder,
    ExternalProperty,
    FailureKind,
    ProjectionFailure,
    ProjectionResult,
    RegexStep,
)

__all__ = [
    "ProjectionEngine",
    "render_placeholders",
    "ConnectionDefinitions",
    "CustomPlaceholder",
    "ExternalProperty",
    "FailureKind",
    "ProjectionFailure",
    "ProjectionResult",
    "RegexStep",
]
