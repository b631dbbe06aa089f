"""Placeholder engine domain models.

Definitions are serialized with camelCase keys so payloads coming from the
connection editor round-trip unchanged. Editing helpers return new copies;
a definition set is never mutated in place.
"""

import enum
import uuid
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel

# Raw article record as produced by the article-fetching layer
Article = Mapping[str, str | None]

CUSTOM_PREFIX = "custom::"
EXTERNAL_PREFIX = "external::"


def _new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base model using camelCase aliases while accepting field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class StepType(str, enum.Enum):
    """Discriminator values for placeholder steps."""

    REGEX = "REGEX"
    UPPERCASE = "UPPERCASE"
    LOWERCASE = "LOWERCASE"
    URL_ENCODE = "URL_ENCODE"


# =============================================================================
# Placeholder Steps
# =============================================================================


class RegexStep(CamelModel):
    """Global regex search-and-replace."""

    id: str = Field(default_factory=_new_id)
    type: Literal["REGEX"] = "REGEX"
    regex_search: str = Field(description="Pattern, JavaScript syntax accepted")
    regex_search_flags: str = Field(default="gi", description="JavaScript-style flag letters")
    replacement_string: str = Field(default="", description="Replacement, may use $1 or $<name>")


class UppercaseStep(CamelModel):
    """Convert the value to upper case."""

    id: str = Field(default_factory=_new_id)
    type: Literal["UPPERCASE"] = "UPPERCASE"


class LowercaseStep(CamelModel):
    """Convert the value to lower case."""

    id: str = Field(default_factory=_new_id)
    type: Literal["LOWERCASE"] = "LOWERCASE"


class UrlEncodeStep(CamelModel):
    """Percent-encode the value like encodeURIComponent."""

    id: str = Field(default_factory=_new_id)
    type: Literal["URL_ENCODE"] = "URL_ENCODE"


def _step_type(value: Any) -> str:
    """Resolve the step tag, treating a missing type as a regex step."""
    if isinstance(value, dict):
        raw = value.get("type")
    else:
        raw = getattr(value, "type", None)
    if isinstance(raw, StepType):
        return raw.value
    return raw or StepType.REGEX.value


PlaceholderStep = Annotated[
    Union[
        Annotated[RegexStep, Tag("REGEX")],
        Annotated[UppercaseStep, Tag("UPPERCASE")],
        Annotated[LowercaseStep, Tag("LOWERCASE")],
        Annotated[UrlEncodeStep, Tag("URL_ENCODE")],
    ],
    Discriminator(_step_type),
]


# =============================================================================
# Definitions
# =============================================================================


class CustomPlaceholder(CamelModel):
    """A named value derived from an article field through ordered steps."""

    id: str = Field(default_factory=_new_id)
    reference_name: str = Field(default="", description="Referenced as {{custom::<name>}}")
    source_placeholder: str = Field(default="", description="Article field the steps read")
    steps: list[PlaceholderStep] = Field(default_factory=list)

    @property
    def output_key(self) -> str:
        return f"{CUSTOM_PREFIX}{self.reference_name}"

    @property
    def is_complete(self) -> bool:
        return bool(self.reference_name and self.source_placeholder and self.steps)


class ExternalProperty(CamelModel):
    """A value scraped from the page linked by an article field."""

    id: str = Field(default_factory=_new_id)
    source_field: str = Field(default="", description="Article field holding the URL")
    css_selector: str = Field(default="", description="CSS selector, optional ::attr(name)")
    label: str = Field(default="", description="Output key suffix")

    @property
    def output_key(self) -> str:
        return f"{EXTERNAL_PREFIX}{self.label}"

    @property
    def is_complete(self) -> bool:
        return bool(self.source_field and self.css_selector and self.label)


class ConnectionDefinitions(CamelModel):
    """All formatting definitions attached to one connection."""

    custom_placeholders: list[CustomPlaceholder] = Field(default_factory=list)
    external_properties: list[ExternalProperty] = Field(default_factory=list)

    # -------------------------------------------------------------------------
    # Custom placeholders
    # -------------------------------------------------------------------------

    def add_custom_placeholder(
        self, placeholder: CustomPlaceholder | None = None
    ) -> "ConnectionDefinitions":
        """Append a placeholder, by default an empty one with a single regex step."""
        if placeholder is None:
            placeholder = CustomPlaceholder(steps=[RegexStep(regex_search="")])
        return self.model_copy(
            update={"custom_placeholders": [*self.custom_placeholders, placeholder]},
            deep=True,
        )

    def remove_custom_placeholder(self, placeholder_id: str) -> "ConnectionDefinitions":
        remaining = [p for p in self.custom_placeholders if p.id != placeholder_id]
        if len(remaining) == len(self.custom_placeholders):
            raise KeyError(placeholder_id)
        return self.model_copy(update={"custom_placeholders": remaining}, deep=True)

    def move_custom_placeholder(self, from_index: int, to_index: int) -> "ConnectionDefinitions":
        """Reorder placeholders. Display order only, each is keyed by name."""
        return self.model_copy(
            update={"custom_placeholders": _moved(self.custom_placeholders, from_index, to_index)},
            deep=True,
        )

    def add_step(self, placeholder_id: str, step: Any) -> "ConnectionDefinitions":
        placeholder = self._placeholder(placeholder_id)
        return self._replace_placeholder(
            placeholder.model_copy(update={"steps": [*placeholder.steps, step]}, deep=True)
        )

    def remove_step(self, placeholder_id: str, step_id: str) -> "ConnectionDefinitions":
        placeholder = self._placeholder(placeholder_id)
        steps = [s for s in placeholder.steps if s.id != step_id]
        if len(steps) == len(placeholder.steps):
            raise KeyError(step_id)
        return self._replace_placeholder(
            placeholder.model_copy(update={"steps": steps}, deep=True)
        )

    def move_step(self, placeholder_id: str, from_index: int, to_index: int) -> "ConnectionDefinitions":
        """Reorder the steps of one placeholder, changing execution order."""
        placeholder = self._placeholder(placeholder_id)
        return self._replace_placeholder(
            placeholder.model_copy(
                update={"steps": _moved(placeholder.steps, from_index, to_index)},
                deep=True,
            )
        )

    # -------------------------------------------------------------------------
    # External properties
    # -------------------------------------------------------------------------

    def add_external_property(self, prop: ExternalProperty) -> "ConnectionDefinitions":
        return self.model_copy(
            update={"external_properties": [*self.external_properties, prop]},
            deep=True,
        )

    def remove_external_property(self, property_id: str) -> "ConnectionDefinitions":
        remaining = [p for p in self.external_properties if p.id != property_id]
        if len(remaining) == len(self.external_properties):
            raise KeyError(property_id)
        return self.model_copy(update={"external_properties": remaining}, deep=True)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _placeholder(self, placeholder_id: str) -> CustomPlaceholder:
        for placeholder in self.custom_placeholders:
            if placeholder.id == placeholder_id:
                return placeholder
        raise KeyError(placeholder_id)

    def _replace_placeholder(self, updated: CustomPlaceholder) -> "ConnectionDefinitions":
        placeholders = [updated if p.id == updated.id else p for p in self.custom_placeholders]
        return self.model_copy(update={"custom_placeholders": placeholders}, deep=True)


def _moved(items: list[Any], from_index: int, to_index: int) -> list[Any]:
    if not (0 <= from_index < len(items)) or not (0 <= to_index < len(items)):
        raise IndexError(f"Cannot move item {from_index} to {to_index} in list of {len(items)}")
    result = list(items)
    result.insert(to_index, result.pop(from_index))
    return result


# =============================================================================
# Projection Output
# =============================================================================


class DefinitionType(str, enum.Enum):
    CUSTOM_PLACEHOLDER = "customPlaceholder"
    EXTERNAL_PROPERTY = "externalProperty"


class FailureKind(str, enum.Enum):
    """Why a definition contributed nothing to a projection."""

    INVALID_PATTERN = "INVALID_PATTERN"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    STEP_ERROR = "STEP_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    TIMEOUT = "TIMEOUT"
    SELECTOR_NO_MATCH = "SELECTOR_NO_MATCH"


class ProjectionFailure(CamelModel):
    """One definition that degraded during projection."""

    definition_id: str
    definition_type: DefinitionType
    kind: FailureKind
    message: str


class ProjectionResult(CamelModel):
    """Augmented article plus the failures collected while building it."""

    article: dict[str, str | None]
    failures: list[ProjectionFailure] = Field(default_factory=list)
