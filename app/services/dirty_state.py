"""Unsaved-changes detection for the connection editor.

Compares a persisted baseline with the pending edits by snapshot, keyed by
definition id. Absent and empty lists compare equal, so clearing the last
placeholder and adding none back is not reported as a change.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.strategies.placeholder_engine.models import ConnectionDefinitions


@dataclass(frozen=True)
class ListDiff:
    """Changes to one list of definitions."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    reordered: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed or self.reordered)

    @property
    def dirty_ids(self) -> set[str]:
        return {*self.added, *self.changed}


@dataclass(frozen=True)
class DefinitionDiff:
    custom_placeholders: ListDiff
    external_properties: ListDiff

    @property
    def has_changes(self) -> bool:
        return self.custom_placeholders.has_changes or self.external_properties.has_changes


def as_definitions(value: ConnectionDefinitions | Mapping[str, Any] | None) -> ConnectionDefinitions:
    """Coerce editor state into definitions, treating null lists as empty."""
    if isinstance(value, ConnectionDefinitions):
        return value
    cleaned = {k: v for k, v in (value or {}).items() if v is not None}
    return ConnectionDefinitions.model_validate(cleaned)


def _diff_list(baseline: list[dict[str, Any]], pending: list[dict[str, Any]]) -> ListDiff:
    base_by_id = {item["id"]: item for item in baseline}
    pending_by_id = {item["id"]: item for item in pending}

    added = [item_id for item_id in pending_by_id if item_id not in base_by_id]
    removed = [item_id for item_id in base_by_id if item_id not in pending_by_id]
    changed = [
        item_id
        for item_id, item in pending_by_id.items()
        if item_id in base_by_id and base_by_id[item_id] != item
    ]

    common_base = [item_id for item_id in base_by_id if item_id in pending_by_id]
    common_pending = [item_id for item_id in pending_by_id if item_id in base_by_id]

    return ListDiff(
        added=added,
        removed=removed,
        changed=changed,
        reordered=common_base != common_pending,
    )


def diff_definitions(
    baseline: ConnectionDefinitions | Mapping[str, Any] | None,
    pending: ConnectionDefinitions | Mapping[str, Any] | None,
) -> DefinitionDiff:
    """Compare persisted definitions with pending edits."""
    base = as_definitions(baseline).model_dump(mode="json", by_alias=True)
    edit = as_definitions(pending).model_dump(mode="json", by_alias=True)

    return DefinitionDiff(
        custom_placeholders=_diff_list(base["customPlaceholders"], edit["customPlaceholders"]),
        external_properties=_diff_list(base["externalProperties"], edit["externalProperties"]),
    )
