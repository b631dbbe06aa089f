"""API request and response schemas.

Pydantic v2 models for API serialization/deserialization. Field names are
camelCase on the wire, matching the definition models.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.strategies.placeholder_engine.models import (
    CamelModel,
    CustomPlaceholder,
    ExternalProperty,
    ProjectionFailure,
)
from app.strategies.placeholder_engine.validation import ValidationIssue


# =============================================================================
# Definition Schemas
# =============================================================================


class CustomPlaceholdersUpdate(CamelModel):
    """Full replacement list of a connection's custom placeholders."""

    custom_placeholders: list[CustomPlaceholder] = Field(default_factory=list)


class ExternalPropertiesUpdate(CamelModel):
    """Full replacement list of a connection's external properties."""

    external_properties: list[ExternalProperty] = Field(default_factory=list)


class ValidateRequest(CamelModel):
    """Pending definitions to check without saving.

    Omitted lists are treated as empty.
    """

    custom_placeholders: list[CustomPlaceholder] | None = None
    external_properties: list[ExternalProperty] | None = None


class ValidationResponse(CamelModel):
    ok: bool
    issues: list[ValidationIssue] = Field(default_factory=list)


# =============================================================================
# Preview Schemas
# =============================================================================


class PreviewRequest(CamelModel):
    """Preview of one article against saved or pending definitions.

    When a definition list is omitted, the saved list is used.
    """

    article: dict[str, str | None] = Field(description="Raw article record")
    custom_placeholders: list[CustomPlaceholder] | None = Field(
        default=None, description="Pending custom placeholders"
    )
    external_properties: list[ExternalProperty] | None = Field(
        default=None, description="Pending external properties"
    )
    content: str | None = Field(
        default=None, description="Message template rendered against the projected article"
    )
    request_id: int | None = Field(
        default=None,
        ge=1,
        description="Increasing number per session; older requests are superseded",
    )
    session_id: str = Field(default="default", max_length=255)


class PreviewResponse(CamelModel):
    request_id: int
    article: dict[str, str | None]
    failures: list[ProjectionFailure] = Field(default_factory=list)
    rendered_content: str | None = None


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(description="Error message")
    error_code: str | None = Field(default=None, description="Application-specific error code")
    extra: dict[str, Any] | None = Field(default=None, description="Additional error context")
