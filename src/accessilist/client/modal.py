"""Confirmation and error dialogs.

Only one dialog is open at a time. Opening moves focus to the confirm
control; cancelling returns focus to whatever opened the dialog.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from accessilist.client.checklist import Renderer

logger = logging.getLogger(__name__)

CONFIRM_BUTTON_ID = "modal-confirm"
TASK_TEXT_LIMIT = 50

Callback = Callable[[], Any]


def truncate_task_text(text: str, limit: int = TASK_TEXT_LIMIT) -> str:
    """Shorten task text for dialog messages, marking the cut with ``...``."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class ConfirmationModal:
    def __init__(self, renderer: Renderer) -> None:
        self.renderer = renderer
        self.is_open = False
        self.title: str | None = None
        self.destructive = False
        self._on_confirm: Callback | None = None
        self._on_cancel: Callback | None = None
        self._trigger: str | None = None

    def open(
        self,
        title: str,
        message: str,
        on_confirm: Callback | None = None,
        on_cancel: Callback | None = None,
        confirm_label: str = "Confirm",
        destructive: bool = False,
        trigger: str | None = None,
    ) -> bool:
        """Show a two-button dialog.

        Returns:
            False if another dialog is already open.
        """
        if self.is_open:
            logger.debug("Dialog %r ignored, %r is open", title, self.title)
            return False
        self.is_open = True
        self.title = title
        self.destructive = destructive
        self._on_confirm = on_confirm
        self._on_cancel = on_cancel
        self._trigger = trigger
        self.renderer.show_modal(title, message, confirm_label, "Cancel")
        self.renderer.focus(CONFIRM_BUTTON_ID)
        return True

    def error(self, title: str, message: str) -> bool:
        """Show a dialog with a single OK control."""
        if self.is_open:
            logger.debug("Dialog %r ignored, %r is open", title, self.title)
            return False
        self.is_open = True
        self.title = title
        self.destructive = False
        self._on_confirm = None
        self._on_cancel = None
        self._trigger = None
        self.renderer.show_modal(title, message, "OK", None)
        self.renderer.focus(CONFIRM_BUTTON_ID)
        return True

    def _close(self) -> tuple[Callback | None, Callback | None, str | None]:
        callbacks = (self._on_confirm, self._on_cancel, self._trigger)
        self.is_open = False
        self.title = None
        self._on_confirm = None
        self._on_cancel = None
        self._trigger = None
        self.renderer.hide_modal()
        return callbacks

    async def confirm(self) -> None:
        if not self.is_open:
            return
        on_confirm, _, _ = self._close()
        await _call(on_confirm)

    async def cancel(self) -> None:
        """Close without confirming (Cancel control or Escape)."""
        if not self.is_open:
            return
        _, on_cancel, trigger = self._close()
        if trigger is not None:
            self.renderer.focus(trigger)
        await _call(on_cancel)


async def _call(callback: Callback | None) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result
