"""Page lifecycle for one checklist session.

``AppContext`` is the single object handlers receive: API client, checklist
model, auto-save controller, status announcer and modal. Opening a session
instantiates it on the server (idempotent), then restores the saved state or,
when nothing has been saved yet, performs the initial save that arms
auto-save.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlsplit

from accessilist.client.autosave import (
    AUTO,
    AutoSaveController,
    Scheduler,
    TimerHandle,
)
from accessilist.client.checklist import ChecklistModel, Renderer
from accessilist.client.exceptions import ApiError
from accessilist.client.http_client import SessionApiClient
from accessilist.client.modal import ConfirmationModal
from accessilist.config.checklist_types import TypeRegistry
from accessilist.state.migrations import is_flat_document
from accessilist.utils.time_provider import TimeProvider, get_default_time_provider

logger = logging.getLogger(__name__)

SHARE_QUERY = re.compile(r"^\?=([A-Z0-9]{3})$")

SUCCESS = "success"
ERROR = "error"
STATUS_TIMEOUT_SECONDS = 5.0
ERROR_STATUS_TIMEOUT_SECONDS = 4.0


def parse_share_url(url_or_query: str) -> str | None:
    """Session key from a minimal share URL (``/?=ABC``), else None.

    Accepts either a full URL or just its query part.
    """
    query = url_or_query
    if not url_or_query.startswith("?"):
        split = urlsplit(url_or_query)
        if not split.query:
            return None
        query = f"?{split.query}"
    match = SHARE_QUERY.match(query)
    return match.group(1) if match else None


def format_save_time(timestamp: float) -> str:
    """``h:mm AM`` in local time, as shown in the status footer."""
    moment = datetime.fromtimestamp(timestamp)
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


class StatusAnnouncer:
    """Transient status footer; each message clears itself after a timeout."""

    def __init__(self, renderer: Renderer, scheduler: Scheduler) -> None:
        self.renderer = renderer
        self.scheduler = scheduler
        self.current: tuple[str, str] | None = None
        self._timer: TimerHandle | None = None

    def announce(self, message: str, kind: str = SUCCESS, timeout: float | None = None) -> None:
        if self._timer is not None:
            self._timer.cancel()
        if timeout is None:
            timeout = ERROR_STATUS_TIMEOUT_SECONDS if kind == ERROR else STATUS_TIMEOUT_SECONDS
        self.current = (message, kind)
        self.renderer.show_status(message, kind)
        self._timer = self.scheduler.call_later(timeout, self.clear)

    def clear(self) -> None:
        self._timer = None
        self.current = None
        self.renderer.clear_status()


@dataclass
class AppContext:
    """Everything a page needs, passed explicitly to handlers."""

    api: SessionApiClient
    model: ChecklistModel
    session_key: str
    renderer: Renderer
    scheduler: Scheduler
    time_provider: TimeProvider = field(default_factory=get_default_time_provider)
    autosave: AutoSaveController = field(init=False)
    announcer: StatusAnnouncer = field(init=False)
    modal: ConfirmationModal = field(init=False)

    def __post_init__(self) -> None:
        self.announcer = StatusAnnouncer(self.renderer, self.scheduler)
        self.modal = ConfirmationModal(self.renderer)
        self.autosave = AutoSaveController(
            self._save,
            scheduler=self.scheduler,
            time_provider=self.time_provider,
            on_success=self._saved,
            on_failure=self._save_failed,
        )

    @classmethod
    def create(
        cls,
        api: SessionApiClient,
        session_key: str,
        type_slug: str,
        renderer: Renderer,
        scheduler: Scheduler,
        *,
        registry: TypeRegistry | None = None,
        time_provider: TimeProvider | None = None,
    ) -> AppContext:
        model = ChecklistModel.for_type(type_slug, registry, renderer)
        return cls(
            api=api,
            model=model,
            session_key=session_key,
            renderer=renderer,
            scheduler=scheduler,
            time_provider=time_provider or get_default_time_provider(),
        )

    @property
    def type_slug(self) -> str:
        return self.model.type_slug

    async def _save(self) -> None:
        # State is collected when the request goes out, not when it was queued
        state = self.model.collect()
        await asyncio.to_thread(self.api.save, self.session_key, self.type_slug, state)

    def _saved(self, operation: str) -> None:
        self.announcer.announce(f"Saved at {format_save_time(self.time_provider.now())}")

    def _save_failed(self, operation: str, error: ApiError) -> None:
        self.announcer.announce(f"Error saving {self.session_key}", ERROR)

    async def open(self) -> bool:
        """Instantiate, then restore or perform the initial save.

        Returns:
            True if saved state was restored.
        """
        try:
            message = await asyncio.to_thread(
                self.api.instantiate, self.session_key, self.type_slug
            )
            logger.info("Session %s: %s", self.session_key, message)
            document = await asyncio.to_thread(self.api.restore, self.session_key)
        except ApiError as e:
            logger.warning("Could not open session %s: %s", self.session_key, e)
            self.announcer.announce(f"Error restoring {self.session_key}", ERROR)
            return False

        if document is None or not _has_state(document):
            logger.info("No saved data for %s, performing initial save", self.session_key)
            await self.perform_initial_save()
            return False

        self.model.restore_document(document)
        self.announcer.announce(f"Restored using {self.session_key}")
        return True

    async def perform_initial_save(self) -> bool:
        saved = await self.autosave.save_now(AUTO)
        self.autosave.enable()
        return saved

    async def delete_session(self, session_key: str) -> bool:
        """Delete a session (admin list); failures open a blocking dialog."""
        try:
            await asyncio.to_thread(self.api.delete, session_key)
        except ApiError as e:
            logger.warning("Delete of %s failed: %s", session_key, e)
            self.modal.error("Delete failed", f"Could not delete {session_key}: {e.message}")
            return False
        return True

    def before_unload(self) -> bool:
        """True when the page should warn before closing."""
        return self.autosave.before_unload()


def _has_state(document: dict) -> bool:
    return bool(document.get("state")) or is_flat_document(document)
