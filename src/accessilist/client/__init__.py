"""
Client-side checklist state for AccessiList sessions.

The client layer owns the live checklist (status cycle, notes, manual rows),
decides when to save, and talks to the session API over HTTP.

Example:
    >>> from accessilist.client import AppContext, SessionApiClient
    >>> from accessilist.client.autosave import AsyncioScheduler
    >>> from accessilist.client.checklist import NullRenderer
    >>> ctx = AppContext.create(
    ...     SessionApiClient("http://localhost:8000"), "ABC", "word",
    ...     NullRenderer(), AsyncioScheduler(),
    ... )
    >>> await ctx.open()
"""

from accessilist.client.autosave import AutoSaveController, AutoSaveState
from accessilist.client.checklist import ChecklistModel, NullRenderer, RecordingRenderer, TaskRow
from accessilist.client.events import EventDispatcher, UIEvent
from accessilist.client.exceptions import (
    ApiClientError,
    ApiConnectionError,
    ApiError,
    ApiNotFoundError,
    ApiRateLimitError,
    ApiServerError,
    ApiTimeoutError,
)
from accessilist.client.http_client import SessionApiClient
from accessilist.client.modal import ConfirmationModal
from accessilist.client.session import AppContext, StatusAnnouncer, parse_share_url
from accessilist.client.status import TaskStatusState

__all__ = [
    "AppContext",
    "ApiClientError",
    "ApiConnectionError",
    "ApiError",
    "ApiNotFoundError",
    "ApiRateLimitError",
    "ApiServerError",
    "ApiTimeoutError",
    "AutoSaveController",
    "AutoSaveState",
    "ChecklistModel",
    "ConfirmationModal",
    "EventDispatcher",
    "NullRenderer",
    "RecordingRenderer",
    "SessionApiClient",
    "StatusAnnouncer",
    "TaskRow",
    "TaskStatusState",
    "UIEvent",
    "parse_share_url",
]
