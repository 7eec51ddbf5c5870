"""Upgrades for session documents written by older clients.

Two generations of legacy data exist on disk:

- Flat documents without a ``state`` key, where the state lived at the top
  level as ``sidePanelState``, ``textareas``, ``statusButtons`` and
  ``restartButtons``.
- Documents carrying a ``type`` display name ("Google Docs") instead of a
  ``typeSlug``, and ``principleRows`` instead of ``checkpointRows``.

Each upgrade step is idempotent; ``upgrade_document`` runs all of them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from accessilist.config.checklist_types import TypeRegistry
from accessilist.state.schema import (
    DEFAULT_ACTIVE_SECTION,
    StatusFlag,
    TaskStatus,
)

logger = logging.getLogger(__name__)

StateUpgrade = Callable[[dict[str, Any]], dict[str, Any]]

_FLAT_STATE_KEYS = ("sidePanelState", "textareas", "statusButtons", "restartButtons")


def is_flat_document(document: dict[str, Any]) -> bool:
    """True for documents from before state was nested under ``state``."""
    return "state" not in document and any(key in document for key in _FLAT_STATE_KEYS)


def lift_flat_state(document: dict[str, Any]) -> dict[str, Any]:
    """Build a state document from a flat legacy document."""
    return {
        "sidePanel": document.get("sidePanelState")
        or {"expanded": True, "activeSection": DEFAULT_ACTIVE_SECTION},
        "notes": document.get("textareas") or {},
        "statusButtons": document.get("statusButtons") or {},
        "restartButtons": document.get("restartButtons") or {},
    }


def rename_legacy_keys(state: dict[str, Any]) -> dict[str, Any]:
    renames = {
        "sidePanelState": "sidePanel",
        "textareas": "notes",
        "principleRows": "checkpointRows",
    }
    upgraded = dict(state)
    for old, new in renames.items():
        if old in upgraded:
            value = upgraded.pop(old)
            upgraded.setdefault(new, value)
    return upgraded


def normalize_status_buttons(state: dict[str, Any]) -> dict[str, Any]:
    """Expand bare status strings and map report-era status names."""
    buttons = state.get("statusButtons")
    if not isinstance(buttons, dict):
        return state

    normalized: dict[str, Any] = {}
    for widget_id, value in buttons.items():
        if isinstance(value, str):
            value = {"state": value, "flag": StatusFlag.TEXT_MANUAL.value}
        if isinstance(value, dict) and "state" in value:
            try:
                value = {**value, "state": TaskStatus(value["state"]).value}
            except ValueError:
                logger.warning("Dropping unknown status %r for %s", value["state"], widget_id)
                continue
        normalized[widget_id] = value
    return {**state, "statusButtons": normalized}


def drop_report_rows(state: dict[str, Any]) -> dict[str, Any]:
    if "reportRows" not in state:
        return state
    return {k: v for k, v in state.items() if k != "reportRows"}


STATE_UPGRADES: list[StateUpgrade] = [
    rename_legacy_keys,
    normalize_status_buttons,
    drop_report_rows,
]


def upgrade_state(state: dict[str, Any]) -> dict[str, Any]:
    """Apply every state upgrade step in order."""
    for step in STATE_UPGRADES:
        state = step(state)
    return state


def resolve_type_slug(document: dict[str, Any], registry: TypeRegistry) -> str:
    """Pick the type slug of a stored document.

    Fallback chain: explicit ``typeSlug``, then the legacy ``type`` display
    name converted through the registry, then the registry default.
    """
    slug = document.get("typeSlug")
    if isinstance(slug, str) and slug:
        return slug

    converted = registry.slug_from_display_name(document.get("type"))
    if converted is not None:
        return converted

    return registry.default_slug


def upgrade_document(document: dict[str, Any], registry: TypeRegistry) -> dict[str, Any]:
    """Return a current-format copy of a stored session document."""
    upgraded = dict(document)
    upgraded["typeSlug"] = resolve_type_slug(document, registry)
    upgraded.pop("type", None)

    if is_flat_document(upgraded):
        state = lift_flat_state(upgraded)
        for key in _FLAT_STATE_KEYS:
            upgraded.pop(key, None)
        logger.info("Lifted flat legacy state for session %s", upgraded.get("sessionKey"))
    else:
        state = upgraded.get("state") if isinstance(upgraded.get("state"), dict) else {}

    upgraded["state"] = upgrade_state(state)
    return upgraded
