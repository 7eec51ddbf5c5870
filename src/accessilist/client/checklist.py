"""In-memory checklist state tree.

``ChecklistModel`` owns every piece of per-session UI state: the side panel,
each task row's notes, status and reset control, and the manual rows the user
added. Event handlers mutate the model; the model projects each change
through a ``Renderer``. ``collect()`` serializes the tree to the state
document and ``restore()`` applies one back.

Widget ids follow the saved-document conventions:

- ``textarea-<rowId>``: notes field
- ``status-<rowId>``: status control
- ``restart-<rowId>``: reset control
- ``task-<rowId>``: task text of a manual row
- ``delete-<rowId>``: delete control of a manual row
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from accessilist.client.status import TaskStatusState, aria_label, icon
from accessilist.config.checklist_types import TypeRegistry
from accessilist.config.templates import ChecklistTemplate, checkpoint_number, load_template
from accessilist.state.migrations import is_flat_document, lift_flat_state, upgrade_state
from accessilist.state.schema import (
    DEFAULT_ACTIVE_SECTION,
    CheckpointRow,
    ChecklistState,
    SidePanelState,
    StatusButtonState,
)
from accessilist.utils.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)

NOTES_PREFIX = "textarea-"
STATUS_PREFIX = "status-"
RESTART_PREFIX = "restart-"
TASK_PREFIX = "task-"
DELETE_PREFIX = "delete-"
HOME_BUTTON_ID = "home-button"


def notes_id(row_id: str) -> str:
    return f"{NOTES_PREFIX}{row_id}"


def status_id(row_id: str) -> str:
    return f"{STATUS_PREFIX}{row_id}"


def restart_id(row_id: str) -> str:
    return f"{RESTART_PREFIX}{row_id}"


def task_id(row_id: str) -> str:
    return f"{TASK_PREFIX}{row_id}"


def delete_id(row_id: str) -> str:
    return f"{DELETE_PREFIX}{row_id}"


def row_id_from_widget(widget_id: str, prefix: str) -> str | None:
    if widget_id.startswith(prefix):
        return widget_id[len(prefix):]
    return None


class Renderer(Protocol):
    """Projection of the state tree onto a concrete UI."""

    def scroll_to_section(self, section_id: str) -> None: ...

    def set_notes(self, row_id: str, text: str) -> None: ...

    def set_task_text(self, row_id: str, text: str) -> None: ...

    def set_status(self, row_id: str, state: TaskStatusState, label: str, icon: str) -> None: ...

    def set_completed(self, row_id: str, completed: bool, manual: bool) -> None: ...

    def set_restart_visible(self, row_id: str, visible: bool) -> None: ...

    def render_manual_row(self, checkpoint_id: str, row: TaskRow) -> None: ...

    def remove_row(self, row_id: str) -> None: ...

    def set_side_panel(self, expanded: bool, active_section: str) -> None: ...

    def focus(self, widget_id: str) -> None: ...

    def show_modal(
        self, title: str, message: str, confirm_label: str, cancel_label: str | None
    ) -> None: ...

    def hide_modal(self) -> None: ...

    def show_status(self, message: str, kind: str) -> None: ...

    def clear_status(self) -> None: ...


class NullRenderer:
    """Renderer that draws nothing (headless use)."""

    def scroll_to_section(self, section_id: str) -> None:
        pass

    def set_notes(self, row_id: str, text: str) -> None:
        pass

    def set_task_text(self, row_id: str, text: str) -> None:
        pass

    def set_status(self, row_id: str, state: TaskStatusState, label: str, icon: str) -> None:
        pass

    def set_completed(self, row_id: str, completed: bool, manual: bool) -> None:
        pass

    def set_restart_visible(self, row_id: str, visible: bool) -> None:
        pass

    def render_manual_row(self, checkpoint_id: str, row: TaskRow) -> None:
        pass

    def remove_row(self, row_id: str) -> None:
        pass

    def set_side_panel(self, expanded: bool, active_section: str) -> None:
        pass

    def focus(self, widget_id: str) -> None:
        pass

    def show_modal(
        self, title: str, message: str, confirm_label: str, cancel_label: str | None
    ) -> None:
        pass

    def hide_modal(self) -> None:
        pass

    def show_status(self, message: str, kind: str) -> None:
        pass

    def clear_status(self) -> None:
        pass


class RecordingRenderer(NullRenderer):
    """Renderer that records every call as ``(method, *args)``.

    Also tracks which widget has focus, which is what keyboard users see.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.focused: str | None = None

    def _record(self, *call: Any) -> None:
        self.calls.append(call)

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def scroll_to_section(self, section_id: str) -> None:
        self._record("scroll_to_section", section_id)

    def set_notes(self, row_id: str, text: str) -> None:
        self._record("set_notes", row_id, text)

    def set_task_text(self, row_id: str, text: str) -> None:
        self._record("set_task_text", row_id, text)

    def set_status(self, row_id: str, state: TaskStatusState, label: str, icon: str) -> None:
        self._record("set_status", row_id, state, label, icon)

    def set_completed(self, row_id: str, completed: bool, manual: bool) -> None:
        self._record("set_completed", row_id, completed, manual)

    def set_restart_visible(self, row_id: str, visible: bool) -> None:
        self._record("set_restart_visible", row_id, visible)

    def render_manual_row(self, checkpoint_id: str, row: TaskRow) -> None:
        self._record("render_manual_row", checkpoint_id, row.id)

    def remove_row(self, row_id: str) -> None:
        self._record("remove_row", row_id)

    def set_side_panel(self, expanded: bool, active_section: str) -> None:
        self._record("set_side_panel", expanded, active_section)

    def focus(self, widget_id: str) -> None:
        self.focused = widget_id
        self._record("focus", widget_id)

    def show_modal(
        self, title: str, message: str, confirm_label: str, cancel_label: str | None
    ) -> None:
        self._record("show_modal", title, message, confirm_label, cancel_label)

    def hide_modal(self) -> None:
        self._record("hide_modal")

    def show_status(self, message: str, kind: str) -> None:
        self._record("show_status", message, kind)

    def clear_status(self) -> None:
        self._record("clear_status")


@dataclass
class TaskRow:
    """Live state of one task row, template or manual."""

    id: str
    checkpoint_id: str
    task: str = ""
    notes: str = ""
    status: TaskStatusState = field(default_factory=TaskStatusState)
    restart_visible: bool = False
    is_manual: bool = False
    info_link: str = ""

    def to_record(self) -> CheckpointRow:
        return CheckpointRow(
            id=self.id,
            task=self.task,
            notes=self.notes,
            status=self.status.status,
            status_flag=self.status.flag,
            is_manual=self.is_manual,
            info_link=self.info_link,
        )

    @classmethod
    def from_record(cls, checkpoint_id: str, record: CheckpointRow) -> TaskRow:
        status = TaskStatusState(record.status, record.status_flag)
        return cls(
            id=record.id,
            checkpoint_id=checkpoint_id,
            task=record.task,
            notes=record.notes,
            status=status,
            restart_visible=status.completed,
            is_manual=True,
            info_link=record.info_link,
        )


class ChecklistModel:
    """State tree for one checklist session.

    Args:
        template: Checklist template providing the static rows.
        renderer: Projection target; defaults to ``NullRenderer``.
    """

    def __init__(self, template: ChecklistTemplate, renderer: Renderer | None = None) -> None:
        self.template = template
        self.renderer: Renderer = renderer or NullRenderer()
        self.expanded = True
        self.active_section = (
            template.checkpoints[0].id if template.checkpoints else DEFAULT_ACTIVE_SECTION
        )
        self._rows: dict[str, TaskRow] = {}
        self._order: dict[str, list[str]] = {}
        for checkpoint in template.checkpoints:
            self._order[checkpoint.id] = []
            for task in checkpoint.tasks:
                self._insert(TaskRow(id=task.id, checkpoint_id=checkpoint.id, task=task.task))

    @classmethod
    def for_type(
        cls,
        type_slug: str,
        registry: TypeRegistry | None = None,
        renderer: Renderer | None = None,
    ) -> ChecklistModel:
        return cls(load_template(type_slug, registry), renderer)

    @property
    def type_slug(self) -> str:
        return self.template.type_slug

    def _insert(self, row: TaskRow) -> None:
        self._rows[row.id] = row
        self._order[row.checkpoint_id].append(row.id)

    # ------------------------------------------------------------------
    # Queries

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._rows

    def get(self, row_id: str) -> TaskRow | None:
        return self._rows.get(row_id)

    def row(self, row_id: str) -> TaskRow:
        try:
            return self._rows[row_id]
        except KeyError:
            raise KeyError(f"Unknown task row {row_id!r}") from None

    def rows(self, checkpoint_id: str) -> list[TaskRow]:
        return [self._rows[row_id] for row_id in self._order.get(checkpoint_id, [])]

    def manual_rows(self, checkpoint_id: str) -> list[TaskRow]:
        return [row for row in self.rows(checkpoint_id) if row.is_manual]

    @property
    def checkpoint_ids(self) -> list[str]:
        return list(self._order)

    def previous_manual_row(self, row_id: str) -> TaskRow | None:
        """The manual row directly above ``row_id`` in its checkpoint."""
        row = self.row(row_id)
        if not row.is_manual:
            return None
        manual = self.manual_rows(row.checkpoint_id)
        index = next(i for i, r in enumerate(manual) if r.id == row_id)
        return manual[index - 1] if index > 0 else None

    def next_manual_row_id(self, checkpoint_id: str) -> str:
        """``"<checkpointNumber>.<rowCount + 1>"``, bumped past ids in use."""
        number = checkpoint_number(checkpoint_id)
        if number is None:
            raise ValidationError(
                f"Not a checkpoint section: {checkpoint_id}", code=ErrorCode.E104_INVALID_STATE
            )
        index = len(self._order.get(checkpoint_id, [])) + 1
        while f"{number}.{index}" in self._rows:
            index += 1
        return f"{number}.{index}"

    # ------------------------------------------------------------------
    # Mutations

    def _project_status(self, row: TaskRow) -> None:
        self.renderer.set_status(
            row.id, row.status, aria_label(row.status.status), icon(row.status.status)
        )
        self.renderer.set_completed(row.id, row.status.completed, row.is_manual)
        self.renderer.set_restart_visible(row.id, row.restart_visible)

    def click_status(self, row_id: str) -> TaskRow:
        row = self.row(row_id)
        row.status = row.status.click()
        row.restart_visible = row.status.completed
        self._project_status(row)
        return row

    def set_notes(self, row_id: str, text: str) -> TaskRow:
        """Store notes typed by the user and apply status inference."""
        row = self.row(row_id)
        row.notes = text
        previous = row.status
        row.status = row.status.notes_changed(text)
        if row.status != previous:
            self.renderer.set_status(
                row.id, row.status, aria_label(row.status.status), icon(row.status.status)
            )
        return row

    def set_task(self, row_id: str, text: str) -> TaskRow:
        row = self.row(row_id)
        if not row.is_manual:
            raise ValidationError(
                f"Task text of template row {row_id} is read-only",
                code=ErrorCode.E104_INVALID_STATE,
            )
        row.task = text
        return row

    def reset_row(self, row_id: str) -> TaskRow:
        """Back to ``ready``: clear text, hide the reset control, unlock fields."""
        row = self.row(row_id)
        row.notes = ""
        if row.is_manual:
            row.task = ""
            self.renderer.set_task_text(row.id, "")
        row.status = TaskStatusState.reset()
        row.restart_visible = False
        self.renderer.set_notes(row.id, "")
        self._project_status(row)
        return row

    def add_manual_row(self, checkpoint_id: str, task: str = "") -> TaskRow:
        if checkpoint_id not in self._order:
            raise ValidationError(
                f"Unknown checkpoint {checkpoint_id}", code=ErrorCode.E104_INVALID_STATE
            )
        row = TaskRow(
            id=self.next_manual_row_id(checkpoint_id),
            checkpoint_id=checkpoint_id,
            task=task,
            is_manual=True,
        )
        self._insert(row)
        self.renderer.render_manual_row(checkpoint_id, row)
        logger.debug("Added manual row %s to %s", row.id, checkpoint_id)
        return row

    def remove_row(self, row_id: str) -> TaskRow:
        row = self.row(row_id)
        if not row.is_manual:
            raise ValidationError(
                f"Template row {row_id} cannot be deleted", code=ErrorCode.E104_INVALID_STATE
            )
        del self._rows[row_id]
        self._order[row.checkpoint_id].remove(row_id)
        self.renderer.remove_row(row_id)
        return row

    def toggle_side_panel(self) -> bool:
        self.expanded = not self.expanded
        self.renderer.set_side_panel(self.expanded, self.active_section)
        return self.expanded

    def navigate(self, section_id: str) -> None:
        self.active_section = section_id
        self.renderer.scroll_to_section(section_id)
        self.renderer.set_side_panel(self.expanded, section_id)

    # ------------------------------------------------------------------
    # Serialization

    def to_state(self) -> ChecklistState:
        rows = list(self._rows.values())
        return ChecklistState(
            side_panel=SidePanelState(expanded=self.expanded, active_section=self.active_section),
            notes={notes_id(r.id): r.notes for r in rows},
            status_buttons={
                status_id(r.id): StatusButtonState(state=r.status.status, flag=r.status.flag)
                for r in rows
            },
            restart_buttons={restart_id(r.id): r.restart_visible for r in rows},
            checkpoint_rows={
                checkpoint_id: [r.to_record() for r in self.manual_rows(checkpoint_id)]
                for checkpoint_id in self._order
            },
        )

    def collect(self) -> dict[str, Any]:
        """The state document for the current tree."""
        return self.to_state().to_json_dict()

    def restore(self, state: dict[str, Any]) -> None:
        """Apply a state document, upgrading legacy layouts first.

        Application order: scroll to the saved section, notes, status
        controls, reset controls, missing manual rows, side panel.

        Raises:
            ValidationError: If the document does not describe a valid state.
        """
        try:
            parsed = ChecklistState.model_validate(upgrade_state(state))
        except PydanticValidationError as e:
            raise ValidationError(
                "Saved state is not a valid checklist state",
                code=ErrorCode.E104_INVALID_STATE,
                details={"errors": e.error_count()},
            ) from e

        has_side_panel = "sidePanel" in state or "sidePanelState" in state
        side_panel = parsed.side_panel if has_side_panel else None
        if side_panel is not None:
            self.renderer.scroll_to_section(side_panel.active_section)

        for widget_id, text in parsed.notes.items():
            row = self._widget_row(widget_id, NOTES_PREFIX)
            if row is not None:
                row.notes = text
                self.renderer.set_notes(row.id, text)

        for widget_id, button in parsed.status_buttons.items():
            row = self._widget_row(widget_id, STATUS_PREFIX)
            if row is not None:
                row.status = TaskStatusState(button.state, button.flag)
                self.renderer.set_status(
                    row.id, row.status, aria_label(button.state), icon(button.state)
                )
                if row.status.completed:
                    row.restart_visible = True
                    self.renderer.set_completed(row.id, True, row.is_manual)

        for widget_id, visible in parsed.restart_buttons.items():
            row = self._widget_row(widget_id, RESTART_PREFIX)
            if row is not None:
                row.restart_visible = visible
                self.renderer.set_restart_visible(row.id, visible)

        for checkpoint_id, records in parsed.checkpoint_rows.items():
            if checkpoint_id not in self._order:
                logger.warning("Skipping manual rows of unknown section %s", checkpoint_id)
                continue
            for record in records:
                if not record.is_manual or record.id in self._rows:
                    continue
                row = TaskRow.from_record(checkpoint_id, record)
                self._insert(row)
                self.renderer.render_manual_row(checkpoint_id, row)
                if row.status.completed:
                    self.renderer.set_completed(row.id, True, True)

        if side_panel is not None:
            self.expanded = side_panel.expanded
            self.active_section = side_panel.active_section
            self.renderer.set_side_panel(self.expanded, self.active_section)

    def restore_document(self, document: dict[str, Any]) -> None:
        """Restore from a whole session document (current or flat legacy)."""
        if is_flat_document(document):
            state = lift_flat_state(document)
        else:
            state = document.get("state") or {}
        self.restore(state)

    def _widget_row(self, widget_id: str, prefix: str) -> TaskRow | None:
        row_id = row_id_from_widget(widget_id, prefix)
        if row_id is None:
            return None
        row = self._rows.get(row_id)
        if row is None:
            logger.debug("No row for widget %s", widget_id)
        return row
