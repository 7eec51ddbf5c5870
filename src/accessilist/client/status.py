"""Per-row status state machine.

Status cycles ``ready -> active -> done -> ready`` on click. The flag records
how the current status was reached so that automatic inference from the
notes field never overrides an explicit user choice:

- ``text-manual``: default; notes edits may move ``ready`` to ``active``
- ``active-auto``: ``active`` was inferred from non-empty notes
- ``active-manual``: the user clicked to ``active``; notes edits are ignored
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from accessilist.state.schema import StatusFlag, TaskStatus

ARIA_LABELS: dict[TaskStatus, str] = {
    TaskStatus.READY: "Task status: Ready",
    TaskStatus.ACTIVE: "Task status: Active",
    TaskStatus.DONE: "Task status: Done",
}

ICONS: dict[TaskStatus, str] = {
    TaskStatus.READY: "ready-1.svg",
    TaskStatus.ACTIVE: "active-1.svg",
    TaskStatus.DONE: "done-1.svg",
}


def aria_label(status: TaskStatus) -> str:
    return ARIA_LABELS[status]


def icon(status: TaskStatus) -> str:
    return ICONS[status]


@dataclass(frozen=True)
class TaskStatusState:
    """Status and flag of one task row.

    Transitions return a new value; rows swap it in.
    """

    status: TaskStatus = TaskStatus.READY
    flag: StatusFlag = StatusFlag.TEXT_MANUAL

    @property
    def completed(self) -> bool:
        """Done rows lock their text fields and show the reset control."""
        return self.status is TaskStatus.DONE

    def click(self) -> TaskStatusState:
        """Advance one step in the status cycle."""
        new_status = self.status.next()
        flag = self.flag
        if new_status is TaskStatus.ACTIVE and flag is not StatusFlag.ACTIVE_AUTO:
            flag = StatusFlag.ACTIVE_MANUAL
        elif new_status is TaskStatus.READY:
            flag = StatusFlag.TEXT_MANUAL
        return TaskStatusState(new_status, flag)

    def notes_changed(self, text: str) -> TaskStatusState:
        """Infer status from the notes field.

        Whitespace-only text counts as empty.
        """
        has_text = bool(text.strip())
        if (
            self.status is TaskStatus.READY
            and has_text
            and self.flag is StatusFlag.TEXT_MANUAL
        ):
            return replace(self, status=TaskStatus.ACTIVE, flag=StatusFlag.ACTIVE_AUTO)
        if (
            self.status is TaskStatus.ACTIVE
            and not has_text
            and self.flag is StatusFlag.ACTIVE_AUTO
        ):
            return TaskStatusState()
        return self

    @staticmethod
    def reset() -> TaskStatusState:
        return TaskStatusState()
