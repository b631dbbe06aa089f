"""Definition validation and write-boundary normalization.

Validation returns a typed result listing every issue rather than stopping
at the first one, so the editor can flag all offending fields at once.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Sequence

from pydantic import Field

from app.core.exceptions import DefinitionError, InvalidPatternError, InvalidSelectorError
from app.strategies.extractors.css_selector import compile_selector
from app.strategies.placeholder_engine.models import (
    CamelModel,
    ConnectionDefinitions,
    CustomPlaceholder,
    ExternalProperty,
    RegexStep,
)
from app.strategies.steps.registry import StepRegistry, default_registry

logger = logging.getLogger(__name__)

# Two-character escape typed into the editor for a line break
LITERAL_NEWLINE_ESCAPE = "\\n"


class ValidationIssue(CamelModel):
    """One problem found in a definition."""

    definition_id: str
    field: str = Field(description="Path of the offending field, e.g. customPlaceholders[0].label")
    code: str = Field(description="REQUIRED, DUPLICATE, INVALID_PATTERN, INVALID_SELECTOR or INVALID_STEP")
    message: str


class ValidationResult(CamelModel):
    """Outcome of validating a definition set."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def merged(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(issues=[*self.issues, *other.issues])


def _duplicates(values: Iterable[str]) -> set[str]:
    counts = Counter(v for v in values if v)
    return {value for value, count in counts.items() if count > 1}


def validate_custom_placeholders(
    placeholders: Sequence[CustomPlaceholder],
    registry: StepRegistry | None = None,
) -> ValidationResult:
    """Check that placeholders are ready to be saved.

    Args:
        placeholders: Placeholders in editor order.
        registry: Step transformers used to validate each step.

    Returns:
        The validation result.
    """
    registry = registry or default_registry()
    issues: list[ValidationIssue] = []
    duplicate_names = _duplicates(p.reference_name for p in placeholders)

    for index, placeholder in enumerate(placeholders):
        path = f"customPlaceholders[{index}]"

        if not placeholder.reference_name:
            issues.append(ValidationIssue(
                definition_id=placeholder.id,
                field=f"{path}.referenceName",
                code="REQUIRED",
                message="Reference name is required",
            ))
        elif placeholder.reference_name in duplicate_names:
            issues.append(ValidationIssue(
                definition_id=placeholder.id,
                field=f"{path}.referenceName",
                code="DUPLICATE",
                message=f"Reference name '{placeholder.reference_name}' is used more than once",
            ))

        if not placeholder.source_placeholder:
            issues.append(ValidationIssue(
                definition_id=placeholder.id,
                field=f"{path}.sourcePlaceholder",
                code="REQUIRED",
                message="Source placeholder is required",
            ))

        if not placeholder.steps:
            issues.append(ValidationIssue(
                definition_id=placeholder.id,
                field=f"{path}.steps",
                code="REQUIRED",
                message="At least one step is required",
            ))

        for step_index, step in enumerate(placeholder.steps):
            step_path = f"{path}.steps[{step_index}]"
            try:
                registry.validate(step)
            except InvalidPatternError as e:
                issues.append(ValidationIssue(
                    definition_id=placeholder.id,
                    field=f"{step_path}.regexSearch",
                    code="INVALID_PATTERN",
                    message=str(e),
                ))
            except DefinitionError as e:
                issues.append(ValidationIssue(
                    definition_id=placeholder.id,
                    field=step_path,
                    code="INVALID_STEP",
                    message=str(e),
                ))

    return ValidationResult(issues=issues)


def validate_external_properties(properties: Sequence[ExternalProperty]) -> ValidationResult:
    """Check that external properties are ready to be saved."""
    issues: list[ValidationIssue] = []
    duplicate_labels = _duplicates(p.label for p in properties)

    for index, prop in enumerate(properties):
        path = f"externalProperties[{index}]"

        for attr, field in (("source_field", "sourceField"), ("css_selector", "cssSelector"), ("label", "label")):
            if not getattr(prop, attr):
                issues.append(ValidationIssue(
                    definition_id=prop.id,
                    field=f"{path}.{field}",
                    code="REQUIRED",
                    message=f"{field} is required",
                ))

        if prop.label in duplicate_labels:
            issues.append(ValidationIssue(
                definition_id=prop.id,
                field=f"{path}.label",
                code="DUPLICATE",
                message=f"Label '{prop.label}' is used more than once",
            ))

        if prop.css_selector:
            try:
                compile_selector(prop.css_selector)
            except InvalidSelectorError as e:
                issues.append(ValidationIssue(
                    definition_id=prop.id,
                    field=f"{path}.cssSelector",
                    code="INVALID_SELECTOR",
                    message=str(e),
                ))

    return ValidationResult(issues=issues)


def validate_definitions(
    definitions: ConnectionDefinitions,
    registry: StepRegistry | None = None,
) -> ValidationResult:
    """Validate a whole connection's definitions."""
    return validate_custom_placeholders(definitions.custom_placeholders, registry).merged(
        validate_external_properties(definitions.external_properties)
    )


# =============================================================================
# Normalization
# =============================================================================


def normalize_custom_placeholders(
    incoming: Sequence[CustomPlaceholder],
    baseline: Sequence[CustomPlaceholder] = (),
) -> list[CustomPlaceholder]:
    """Convert typed `\\n` escapes in regex patterns into line breaks.

    Only patterns that are new or differ from the persisted baseline (matched
    by step id) are converted. Stored patterns are returned untouched, so
    re-saving an unchanged definition never unescapes it a second time.

    Args:
        incoming: Placeholders submitted for saving.
        baseline: Placeholders currently persisted.

    Returns:
        Copies of the placeholders ready to persist.
    """
    stored_patterns = {
        step.id: step.regex_search
        for placeholder in baseline
        for step in placeholder.steps
        if isinstance(step, RegexStep)
    }

    normalized: list[CustomPlaceholder] = []
    for placeholder in incoming:
        steps = []
        for step in placeholder.steps:
            if (
                isinstance(step, RegexStep)
                and stored_patterns.get(step.id) != step.regex_search
                and LITERAL_NEWLINE_ESCAPE in step.regex_search
            ):
                logger.debug(f"Normalizing newline escapes in step {step.id}")
                step = step.model_copy(
                    update={"regex_search": step.regex_search.replace(LITERAL_NEWLINE_ESCAPE, "\n")}
                )
            steps.append(step)
        normalized.append(placeholder.model_copy(update={"steps": steps}, deep=True))
    return normalized
