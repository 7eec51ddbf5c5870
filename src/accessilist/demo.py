"""Demo sessions for the reserved demo keys.

Each registered type with a demo key gets one session: the first 5% of its
template rows (rounded up) done, the next 70% (rounded down) active with
notes, the rest ready, plus one finished manual row per checkpoint.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from accessilist.client.checklist import ChecklistModel
from accessilist.client.status import TaskStatusState
from accessilist.config.checklist_types import ChecklistType, TypeRegistry
from accessilist.state.schema import StatusFlag, TaskStatus
from accessilist.state.session_store import SessionStore
from accessilist.utils.time_provider import now_ms

logger = logging.getLogger(__name__)

DONE_SHARE = 0.05
ACTIVE_SHARE = 0.70
MANUAL_ROW_TASK = "Hey! I added this!"
MANUAL_ROW_NOTES = "Great job!"


@dataclass
class DemoSession:
    session_key: str
    type_slug: str
    done: int
    active: int
    ready: int
    manual_rows: int


def split_counts(total: int) -> tuple[int, int, int]:
    """(done, active, ready) counts for ``total`` template rows."""
    done = min(total, math.ceil(total * DONE_SHARE))
    active = min(total - done, math.floor(total * ACTIVE_SHARE))
    return done, active, total - done - active


def build_demo_model(checklist_type: ChecklistType, registry: TypeRegistry) -> ChecklistModel:
    model = ChecklistModel.for_type(checklist_type.slug, registry)
    template_rows = [
        row for checkpoint_id in model.checkpoint_ids for row in model.rows(checkpoint_id)
    ]
    done, active, _ = split_counts(len(template_rows))

    for index, row in enumerate(template_rows):
        if index < done:
            row.status = TaskStatusState(TaskStatus.DONE, StatusFlag.ACTIVE_MANUAL)
            row.restart_visible = True
            row.notes = f"Completed task {row.id} - all requirements met!"
        elif index < done + active:
            row.status = TaskStatusState(TaskStatus.ACTIVE, StatusFlag.ACTIVE_AUTO)
            row.notes = f"Working on task {row.id}..."

    for checkpoint_id in model.checkpoint_ids:
        row = model.add_manual_row(checkpoint_id, MANUAL_ROW_TASK)
        row.notes = MANUAL_ROW_NOTES
        row.status = TaskStatusState(TaskStatus.DONE, StatusFlag.ACTIVE_MANUAL)
        row.restart_visible = True
    return model


def generate_demo_sessions(
    store: SessionStore, registry: TypeRegistry | None = None
) -> list[DemoSession]:
    """Write (or overwrite) one demo session per reserved key."""
    registry = registry or store.registry
    created: list[DemoSession] = []

    for checklist_type in registry:
        if not checklist_type.demo_key:
            continue
        model = build_demo_model(checklist_type, registry)
        timestamp = now_ms(store.time_provider)
        store.write(
            checklist_type.demo_key,
            {
                "sessionKey": checklist_type.demo_key,
                "typeSlug": checklist_type.slug,
                "timestamp": timestamp,
                "metadata": {"created": timestamp},
                "state": model.collect(),
            },
        )
        template_total = sum(
            1
            for checkpoint_id in model.checkpoint_ids
            for row in model.rows(checkpoint_id)
            if not row.is_manual
        )
        done, active, ready = split_counts(template_total)
        created.append(
            DemoSession(
                session_key=checklist_type.demo_key,
                type_slug=checklist_type.slug,
                done=done,
                active=active,
                ready=ready,
                manual_rows=len(model.checkpoint_ids),
            )
        )
        logger.info("Wrote demo session %s (%s)", checklist_type.demo_key, checklist_type.slug)

    return created
