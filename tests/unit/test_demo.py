"""Tests for demo session generation."""

import pytest

from accessilist.config.checklist_types import builtin_registry
from accessilist.demo import (
    MANUAL_ROW_NOTES,
    MANUAL_ROW_TASK,
    build_demo_model,
    generate_demo_sessions,
    split_counts,
)
from accessilist.reports import IN_PROGRESS, calculate_status


class TestSplitCounts:
    @pytest.mark.parametrize(
        "total, expected",
        [(0, (0, 0, 0)), (1, (1, 0, 0)), (9, (1, 6, 2)), (10, (1, 7, 2))],
    )
    def test_split(self, total, expected):
        assert split_counts(total) == expected
        assert sum(split_counts(total)) == total


class TestBuildDemoModel:
    """Row states of one demo checklist."""

    def test_camtasia_rows(self):
        registry = builtin_registry()
        model = build_demo_model(registry.get("camtasia"), registry)
        template_rows = [
            row
            for checkpoint_id in model.checkpoint_ids
            for row in model.rows(checkpoint_id)
            if not row.is_manual
        ]
        statuses = [row.status.status.value for row in template_rows]

        assert statuses == ["done"] + ["active"] * 6 + ["ready"] * 2
        assert template_rows[0].restart_visible is True
        assert template_rows[0].notes.startswith("Completed task")
        assert template_rows[1].notes == f"Working on task {template_rows[1].id}..."
        assert template_rows[-1].notes == ""

    def test_one_manual_row_per_checkpoint(self):
        registry = builtin_registry()
        model = build_demo_model(registry.get("excel"), registry)

        for checkpoint_id in model.checkpoint_ids:
            manual = model.manual_rows(checkpoint_id)
            assert len(manual) == 1
            assert manual[0].task == MANUAL_ROW_TASK
            assert manual[0].notes == MANUAL_ROW_NOTES
            assert manual[0].status.completed


class TestGenerateDemoSessions:
    """Writing demo sessions to the store."""

    def test_one_session_per_reserved_key(self, store):
        sessions = generate_demo_sessions(store)

        assert {s.session_key for s in sessions} == set(store.registry.reserved_keys)
        for session in sessions:
            document = store.read(session.session_key)
            assert document["typeSlug"] == session.type_slug
            assert document["metadata"]["created"] > 0

    def test_documents_restore_as_in_progress(self, store):
        generate_demo_sessions(store)
        document = store.read("CAM")
        assert calculate_status(document["state"]["statusButtons"]) == IN_PROGRESS
        assert len(document["state"]["checkpointRows"]["checkpoint-1"]) == 1

    def test_regenerating_overwrites(self, store):
        generate_demo_sessions(store)
        generate_demo_sessions(store)
        assert len(store.list()) == len(store.registry.reserved_keys)

    def test_counts_reported(self, store):
        by_key = {s.session_key: s for s in generate_demo_sessions(store)}
        camtasia = by_key["CAM"]
        assert (camtasia.done, camtasia.active, camtasia.ready) == (1, 6, 2)
        assert camtasia.manual_rows == 4
