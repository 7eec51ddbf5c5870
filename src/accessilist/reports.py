"""Aggregate status and progress of checklist sessions.

Used by ``/api/list-detailed`` and the ``accessilist report`` command to
summarize sessions without a second fetch of their state.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from accessilist.state.schema import SessionSummary, TaskStatus

PENDING = "pending"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"


def _task_status(value: Any) -> TaskStatus | None:
    """Status of one ``statusButtons`` entry (dict or bare legacy string)."""
    raw = value.get("state") if isinstance(value, Mapping) else value
    try:
        return TaskStatus(raw)
    except ValueError:
        return None


def _statuses(status_buttons: Any) -> list[TaskStatus | None]:
    # State is stored opaquely; anything but an object counts as no tasks
    if not isinstance(status_buttons, Mapping):
        return []
    return [_task_status(v) for v in status_buttons.values()]


def calculate_status(status_buttons: Mapping[str, Any] | None) -> str:
    """Overall session status.

    No tasks is ``pending``; all done is ``completed``; any done or active is
    ``in-progress``; otherwise ``pending``.
    """
    statuses = _statuses(status_buttons)
    if not statuses:
        return PENDING
    if all(s is TaskStatus.DONE for s in statuses):
        return COMPLETED
    if any(s in (TaskStatus.DONE, TaskStatus.ACTIVE) for s in statuses):
        return IN_PROGRESS
    return PENDING


def progress(status_buttons: Mapping[str, Any] | None) -> float:
    """Fraction of tasks done, 0.0 for an empty checklist."""
    statuses = _statuses(status_buttons)
    if not statuses:
        return 0.0
    return sum(1 for s in statuses if s is TaskStatus.DONE) / len(statuses)


def annotate(summary: SessionSummary) -> SessionSummary:
    """Fill ``status`` and ``progress`` of a detailed summary from its state."""
    buttons = (summary.state or {}).get("statusButtons")
    summary.status = calculate_status(buttons)
    summary.progress = round(progress(buttons), 4)
    return summary


@dataclass
class SystemReport:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    average_progress: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byStatus": self.by_status,
            "byType": self.by_type,
            "averageProgress": self.average_progress,
        }


def summarize(sessions: Iterable[SessionSummary]) -> SystemReport:
    """System-wide counts over detailed session summaries."""
    statuses: Counter[str] = Counter({PENDING: 0, IN_PROGRESS: 0, COMPLETED: 0})
    types: Counter[str] = Counter()
    progress_total = 0.0
    count = 0

    for summary in sessions:
        buttons = (summary.state or {}).get("statusButtons")
        statuses[calculate_status(buttons)] += 1
        types[summary.type_slug] += 1
        progress_total += progress(buttons)
        count += 1

    return SystemReport(
        total=count,
        by_status=dict(statuses),
        by_type=dict(sorted(types.items())),
        average_progress=round(progress_total / count, 4) if count else 0.0,
    )
