"""Exception taxonomy for the format engine.

Definition errors are raised at save time and block persistence.
Extraction errors are raised by the external property extractor and are
converted into per-definition failures by the projection engine.
"""

from typing import Any


class FormatEngineError(Exception):
    """Base exception for all format engine errors."""


# =============================================================================
# Definition Errors (save time)
# =============================================================================


class DefinitionError(FormatEngineError):
    """A single definition is not usable as configured."""


class InvalidPatternError(DefinitionError):
    """A regex step pattern does not compile under its flags."""

    def __init__(self, pattern: str, flags: str, reason: str) -> None:
        self.pattern = pattern
        self.flags = flags
        self.reason = reason
        super().__init__(f"Invalid regex /{pattern}/{flags}: {reason}")


class InvalidSelectorError(DefinitionError):
    """A CSS selector cannot be parsed."""

    def __init__(self, selector: str, reason: str) -> None:
        self.selector = selector
        self.reason = reason
        super().__init__(f"Invalid CSS selector '{selector}': {reason}")


class InvalidStepError(DefinitionError):
    """A transformation step is misconfigured or of an unknown type."""


class DefinitionValidationError(FormatEngineError):
    """Raised when a definition set fails validation on save.

    Attributes:
        issues: The validation issues that blocked the save.
    """

    def __init__(self, issues: list[Any]) -> None:
        self.issues = issues
        summary = "; ".join(getattr(issue, "message", str(issue)) for issue in issues[:3])
        super().__init__(f"{len(issues)} validation issue(s): {summary}")


# =============================================================================
# Extraction Errors (projection time)
# =============================================================================


class ExtractionError(FormatEngineError):
    """Base class for external property extraction failures."""


class FetchError(ExtractionError):
    """The referenced page could not be fetched."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class FetchTimeoutError(FetchError):
    """The referenced page did not respond in time."""


class BlockedAddressError(FetchError):
    """The URL resolves to a loopback, private or otherwise non-public address."""


class SelectorNoMatchError(ExtractionError):
    """The CSS selector matched nothing usable in the fetched page."""

    def __init__(self, url: str, selector: str, reason: str = "selector matched nothing") -> None:
        self.url = url
        self.selector = selector
        super().__init__(f"{reason}: '{selector}' on {url}")


class MissingSourceFieldError(FormatEngineError):
    """The article does not carry the requested source field."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Article has no value for '{field}'")


# =============================================================================
# Preview Errors
# =============================================================================


class PreviewSupersededError(FormatEngineError):
    """A preview request was overtaken by a newer one for the same session."""

    def __init__(self, session_key: str, request_id: int, latest_request_id: int) -> None:
        self.session_key = session_key
        self.request_id = request_id
        self.latest_request_id = latest_request_id
        super().__init__(
            f"Preview request {request_id} superseded by {latest_request_id} "
            f"for session {session_key}"
        )
