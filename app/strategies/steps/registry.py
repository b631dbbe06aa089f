"""Step transformer registry.

Maps a step's `type` discriminator to the transformer that executes it.
"""

import logging
from typing import Any

from app.core.exceptions import InvalidStepError
from app.interfaces.step import BaseStepTransformer
from app.strategies.steps.regex import RegexStepTransformer
from app.strategies.steps.text import (
    LowercaseTransformer,
    UppercaseTransformer,
    UrlEncodeTransformer,
)

logger = logging.getLogger(__name__)


class StepRegistry:
    """Registry of step transformers keyed by step type."""

    def __init__(self, transformers: list[BaseStepTransformer] | None = None) -> None:
        self._transformers: dict[str, BaseStepTransformer] = {}
        for transformer in transformers or []:
            self.register(transformer)

    def register(self, transformer: BaseStepTransformer) -> None:
        if transformer.step_type in self._transformers:
            logger.warning(f"Replacing transformer for step type {transformer.step_type}")
        self._transformers[transformer.step_type] = transformer

    def get(self, step_type: str) -> BaseStepTransformer:
        try:
            return self._transformers[step_type]
        except KeyError:
            raise InvalidStepError(
                f"Unknown step type '{step_type}'. "
                f"Valid options: {', '.join(sorted(self._transformers))}"
            ) from None

    def apply(self, value: str, step: Any) -> str:
        return self.get(step.type).apply(value, step)

    def validate(self, step: Any) -> None:
        self.get(step.type).validate(step)

    @property
    def step_types(self) -> set[str]:
        return set(self._transformers)


def default_registry() -> StepRegistry:
    """Create a registry with every built-in step type."""
    return StepRegistry(
        [
            RegexStepTransformer(),
            UppercaseTransformer(),
            LowercaseTransformer(),
            UrlEncodeTransformer(),
        ]
    )
