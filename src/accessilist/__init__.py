"""
AccessiList.

Accessibility checklist sessions: a small JSON-file session service and the
client-side state machinery that saves to it.

Public API:
-----------
- SessionStore: File-backed session persistence
- TypeRegistry: Known checklist types
- load_template: Checklist template for a type
- create_app: FastAPI application factory (``accessilist.api``)
- SessionApiClient: HTTP client for the session API (``accessilist.client``)

Quick Start:
-----------
>>> from accessilist import SessionStore
>>> store = SessionStore("saves")
>>> key = store.generate_key()
>>> store.create(key, "word")
True
"""

from __future__ import annotations

__version__ = "1.0.0"

from .config.checklist_types import TypeRegistry, builtin_registry, load_type_registry
from .config.templates import load_template
from .state.session_store import SessionStore

__all__ = [
    "SessionStore",
    "TypeRegistry",
    "__version__",
    "builtin_registry",
    "load_template",
    "load_type_registry",
]
