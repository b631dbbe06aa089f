"""Application services built on the placeholder engine."""

from app.services.definition_store import DefinitionStore
from app.services.dirty_state import DefinitionDiff, diff_definitions
from app.services.preview import PreviewCoordinator

__all__ = [
    "DefinitionStore",
    "DefinitionDiff",
    "PreviewCoordinator",
    "diff_definitions",
]
