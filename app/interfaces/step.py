"""Abstract base class for placeholder step transformers.

Each step type of a custom placeholder is handled by one transformer,
registered by its discriminator value.
"""

from abc import ABC, abstractmethod
from typing import Any


class BaseStepTransformer(ABC):
    """Applies one kind of placeholder step to a working value.

    Example:
        ```python
        class UppercaseTransformer(BaseStepTransformer):
            step_type = "UPPERCASE"

            def apply(self, value: str, step: Any) -> str:
                return value.upper()
        ```
    """

    step_type: str

    @abstractmethod
    def apply(self, value: str, step: Any) -> str:
        """Transform the working value.

        Args:
            value: Output of the previous step (or the source field).
            step: The step definition.

        Returns:
            The transformed value.

        Raises:
            DefinitionError: If the step cannot be applied as configured.
        """
        ...

    def validate(self, step: Any) -> None:
        """Check that a step is usable before it is saved.

        Raises:
            DefinitionError: If the step is misconfigured.
        """
        return None
