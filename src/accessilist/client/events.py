"""Delegated UI event handling.

A single ``EventDispatcher`` receives every interaction tagged with an
action name and routes it through a dispatch table. Click actions mutate the
checklist model and then mark the session dirty; destructive actions go
through the confirmation dialog first.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from accessilist.client.autosave import MANUAL
from accessilist.client.checklist import HOME_BUTTON_ID, delete_id, status_id, task_id
from accessilist.client.modal import truncate_task_text
from accessilist.client.session import AppContext
from accessilist.utils.errors import AccessiListError

logger = logging.getLogger(__name__)

STATUS = "status"
RESET = "reset"
DELETE = "delete"
TOGGLE_STRIP = "toggle-strip"
CHECKLIST_CAPTION = "checklist-caption"
NOTES = "notes"
TASK = "task"
ADD_ROW = "add-row"
SAVE = "save"
NAV = "nav"

CAPTION_PREFIX = "caption-"


@dataclass(frozen=True)
class UIEvent:
    """One user interaction.

    Attributes:
        action: Action tag of the control
        target: Row id, checkpoint id or section id the control belongs to
        value: Current text for input events
        trigger: Widget id that raised the event, for focus return
    """

    action: str
    target: str = ""
    value: str = ""
    trigger: str | None = None


Handler = Callable[[UIEvent], Awaitable[None]]


class EventDispatcher:
    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx
        self._handlers: dict[str, Handler] = {
            STATUS: self._on_status,
            RESET: self._on_reset,
            DELETE: self._on_delete,
            TOGGLE_STRIP: self._on_toggle_strip,
            CHECKLIST_CAPTION: self._on_caption,
            NOTES: self._on_notes,
            TASK: self._on_task,
            ADD_ROW: self._on_add_row,
            SAVE: self._on_save,
            NAV: self._on_nav,
        }

    @property
    def actions(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, event: UIEvent) -> bool:
        """Route ``event`` to its handler.

        Returns:
            False if no handler is registered for the action.
        """
        handler = self._handlers.get(event.action)
        if handler is None:
            logger.debug("No handler for action %r", event.action)
            return False
        await handler(event)
        return True

    async def _on_status(self, event: UIEvent) -> None:
        self.ctx.model.click_status(event.target)
        self.ctx.autosave.mark_dirty()

    async def _on_notes(self, event: UIEvent) -> None:
        self.ctx.model.set_notes(event.target, event.value)
        self.ctx.autosave.mark_dirty()

    async def _on_task(self, event: UIEvent) -> None:
        self.ctx.model.set_task(event.target, event.value)
        self.ctx.autosave.mark_dirty()

    async def _on_toggle_strip(self, event: UIEvent) -> None:
        self.ctx.model.toggle_side_panel()
        self.ctx.autosave.mark_dirty()

    async def _on_caption(self, event: UIEvent) -> None:
        self.ctx.renderer.focus(f"{CAPTION_PREFIX}{event.target}")
        self.ctx.autosave.mark_dirty()

    async def _on_nav(self, event: UIEvent) -> None:
        self.ctx.model.navigate(event.target)
        self.ctx.autosave.mark_dirty()

    async def _on_save(self, event: UIEvent) -> None:
        await self.ctx.autosave.save_now(MANUAL)

    async def _on_add_row(self, event: UIEvent) -> None:
        row = self.ctx.model.add_manual_row(event.target)
        self.ctx.renderer.focus(task_id(row.id))
        self.ctx.autosave.mark_dirty()
        await self.ctx.autosave.save_now(MANUAL)

    async def _on_reset(self, event: UIEvent) -> None:
        row = self.ctx.model.row(event.target)
        task = truncate_task_text(row.task)

        async def confirm() -> None:
            self.ctx.model.reset_row(row.id)
            self.ctx.renderer.focus(status_id(row.id))
            self.ctx.autosave.mark_dirty()
            await self.ctx.autosave.save_now(RESET)

        self.ctx.modal.open(
            "Reset Task",
            f'Do you want to reset "{task}" to Ready?',
            on_confirm=confirm,
            confirm_label="Reset",
            destructive=True,
            trigger=event.trigger,
        )

    async def _on_delete(self, event: UIEvent) -> None:
        row = self.ctx.model.row(event.target)
        task = truncate_task_text(row.task) or row.id

        async def confirm() -> None:
            previous = self.ctx.model.previous_manual_row(row.id)
            try:
                self.ctx.model.remove_row(row.id)
            except AccessiListError as e:
                self.ctx.modal.error("Delete failed", e.message)
                return
            self.ctx.renderer.focus(delete_id(previous.id) if previous else HOME_BUTTON_ID)
            self.ctx.autosave.mark_dirty()
            await self.ctx.autosave.save_now(DELETE)

        self.ctx.modal.open(
            "Delete Task",
            f'Do you want to delete "{task}"?',
            on_confirm=confirm,
            confirm_label="Delete",
            destructive=True,
            trigger=event.trigger,
        )
