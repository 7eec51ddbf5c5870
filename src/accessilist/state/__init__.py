"""Session persistence for AccessiList.

Public API:
- SessionStore: locked JSON-file-per-session store
- ChecklistState and friends: pydantic models of the state document
- upgrade_document: convert legacy session documents

Usage:
    from accessilist.state import SessionStore

    store = SessionStore("saves")
    store.create("ABC", "word")
    store.write("ABC", {"sessionKey": "ABC", "typeSlug": "word", "state": {}})
    document = store.read("ABC")
"""

from .migrations import resolve_type_slug, upgrade_document, upgrade_state
from .schema import (
    SCHEMA_VERSION,
    CheckpointRow,
    ChecklistState,
    SessionSummary,
    SidePanelState,
    StatusButtonState,
    StatusFlag,
    TaskStatus,
)
from .session_store import SessionStore, validate_session_key

__all__ = [
    "SCHEMA_VERSION",
    "CheckpointRow",
    "ChecklistState",
    "SessionSummary",
    "SidePanelState",
    "StatusButtonState",
    "StatusFlag",
    "TaskStatus",
    "SessionStore",
    "validate_session_key",
    "resolve_type_slug",
    "upgrade_document",
    "upgrade_state",
]
