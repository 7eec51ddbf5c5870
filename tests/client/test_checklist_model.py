"""Tests for the in-memory checklist model: mutations, collect and restore."""

import pytest

from accessilist.client.checklist import ChecklistModel, RecordingRenderer, TaskRow
from accessilist.client.status import TaskStatusState
from accessilist.config.checklist_types import builtin_registry
from accessilist.state.schema import StatusFlag, TaskStatus
from accessilist.utils.errors import ValidationError


@pytest.fixture
def model(renderer):
    return ChecklistModel.for_type("camtasia", builtin_registry(), renderer)


class TestConstruction:
    def test_rows_from_template(self, model):
        assert model.checkpoint_ids == [
            "checkpoint-1",
            "checkpoint-2",
            "checkpoint-3",
            "checkpoint-4",
        ]
        assert [r.id for r in model.rows("checkpoint-2")] == ["2.1", "2.2", "2.3"]
        assert model.active_section == "checkpoint-1"
        assert model.expanded is True

    def test_unknown_row(self, model):
        assert model.get("9.9") is None
        with pytest.raises(KeyError):
            model.row("9.9")


class TestMutations:
    """Row edits and their projection."""

    def test_click_status_shows_reset_on_done(self, model, renderer):
        model.click_status("1.1")
        row = model.click_status("1.1")

        assert row.status.status is TaskStatus.DONE
        assert row.restart_visible is True
        assert ("set_completed", "1.1", True, False) in renderer.calls
        assert ("set_restart_visible", "1.1", True) in renderer.calls

    def test_notes_infer_active(self, model, renderer):
        row = model.set_notes("1.1", "in progress")
        assert row.status == TaskStatusState(TaskStatus.ACTIVE, StatusFlag.ACTIVE_AUTO)
        assert renderer.names() == ["set_status"]

    def test_notes_without_status_change_do_not_redraw(self, model, renderer):
        model.click_status("1.1")
        renderer.calls.clear()
        model.set_notes("1.1", "x")
        assert renderer.calls == []

    def test_template_task_is_read_only(self, model):
        with pytest.raises(ValidationError):
            model.set_task("1.1", "changed")

    def test_reset_row(self, model, renderer):
        model.set_notes("1.1", "note")
        model.click_status("1.1")
        model.click_status("1.1")

        row = model.reset_row("1.1")
        assert row.notes == ""
        assert row.status == TaskStatusState()
        assert row.restart_visible is False
        assert ("set_notes", "1.1", "") in renderer.calls

    def test_reset_manual_row_clears_task(self, model, renderer):
        row = model.add_manual_row("checkpoint-1", "My task")
        model.reset_row(row.id)
        assert row.task == ""
        assert ("set_task_text", row.id, "") in renderer.calls

    def test_side_panel(self, model, renderer):
        assert model.toggle_side_panel() is False
        model.navigate("checkpoint-3")
        assert model.active_section == "checkpoint-3"
        assert renderer.calls[-2:] == [
            ("scroll_to_section", "checkpoint-3"),
            ("set_side_panel", False, "checkpoint-3"),
        ]


class TestManualRows:
    """Rows added at runtime."""

    def test_ids_follow_checkpoint_row_count(self, model):
        first = model.add_manual_row("checkpoint-1")
        second = model.add_manual_row("checkpoint-1")
        assert (first.id, second.id) == ("1.3", "1.4")
        assert first.is_manual

    def test_id_skips_ids_in_use(self, model):
        first = model.add_manual_row("checkpoint-1")
        second = model.add_manual_row("checkpoint-1")
        model.remove_row(first.id)
        assert model.add_manual_row("checkpoint-1").id == "1.5"
        assert second.id in model

    def test_unknown_checkpoint(self, model):
        with pytest.raises(ValidationError):
            model.add_manual_row("checkpoint-9")

    def test_template_rows_cannot_be_removed(self, model):
        with pytest.raises(ValidationError):
            model.remove_row("1.1")

    def test_previous_manual_row(self, model):
        first = model.add_manual_row("checkpoint-2")
        second = model.add_manual_row("checkpoint-2")
        assert model.previous_manual_row(second.id) is first
        assert model.previous_manual_row(first.id) is None
        assert model.previous_manual_row("2.1") is None


class TestCollect:
    def test_collect_shape(self, model):
        model.set_notes("1.1", "hello")
        model.add_manual_row("checkpoint-4", "Extra")
        state = model.collect()

        assert state["sidePanel"] == {"expanded": True, "activeSection": "checkpoint-1"}
        assert state["notes"]["textarea-1.1"] == "hello"
        assert state["statusButtons"]["status-1.1"] == {"state": "active", "flag": "active-auto"}
        assert state["restartButtons"]["restart-1.1"] is False
        assert state["checkpointRows"]["checkpoint-1"] == []
        assert state["checkpointRows"]["checkpoint-4"] == [
            {
                "id": "4.3",
                "task": "Extra",
                "notes": "",
                "status": "ready",
                "statusFlag": "text-manual",
                "isManual": True,
                "infoLink": "",
            }
        ]


class TestRestore:
    """Applying a saved state document."""

    def test_round_trip_through_fresh_model(self, model):
        model.set_notes("2.1", "captions synced")
        model.click_status("3.1")
        model.click_status("3.1")
        row = model.add_manual_row("checkpoint-2", "Check audio description")
        model.set_notes(row.id, "later")
        model.navigate("checkpoint-2")
        model.toggle_side_panel()
        state = model.collect()

        fresh = ChecklistModel.for_type("camtasia", builtin_registry())
        fresh.restore(state)

        assert fresh.collect() == state
        assert fresh.row(row.id).task == "Check audio description"

    def test_application_order(self, model, renderer):
        state = {
            "sidePanel": {"expanded": False, "activeSection": "checkpoint-2"},
            "notes": {"textarea-1.1": "n"},
            "statusButtons": {"status-1.1": {"state": "done", "flag": "active-manual"}},
            "restartButtons": {"restart-1.1": True},
            "checkpointRows": {
                "checkpoint-1": [{"id": "1.3", "task": "m", "status": "ready"}]
            },
        }
        model.restore(state)

        names = renderer.names()
        order = [
            names.index("scroll_to_section"),
            names.index("set_notes"),
            names.index("set_status"),
            names.index("set_restart_visible"),
            names.index("render_manual_row"),
            names.index("set_side_panel"),
        ]
        assert order == sorted(order)
        assert names[0] == "scroll_to_section"
        assert names[-1] == "set_side_panel"

    def test_restores_legacy_keys(self, model):
        model.restore(
            {
                "sidePanelState": {"expanded": True, "activeSection": "checkpoint-3"},
                "textareas": {"textarea-1.2": "old"},
                "statusButtons": {"status-1.2": "completed"},
                "principleRows": {"checkpoint-1": [{"id": "1.3", "task": "legacy"}]},
            }
        )
        assert model.active_section == "checkpoint-3"
        assert model.row("1.2").notes == "old"
        assert model.row("1.2").status.status is TaskStatus.DONE
        assert model.row("1.2").restart_visible is True
        assert model.row("1.3").task == "legacy"

    def test_unknown_widgets_and_sections_ignored(self, model):
        model.restore(
            {
                "notes": {"textarea-9.9": "x", "other": "y"},
                "checkpointRows": {"checkpoint-9": [{"id": "9.1"}]},
            }
        )
        assert "9.9" not in model
        assert "9.1" not in model

    def test_existing_manual_rows_not_duplicated(self, model):
        model.add_manual_row("checkpoint-1", "mine")
        model.restore({"checkpointRows": {"checkpoint-1": [{"id": "1.3", "task": "theirs"}]}})
        assert [r.task for r in model.manual_rows("checkpoint-1")] == ["mine"]

    def test_no_side_panel_keeps_current(self, model, renderer):
        model.restore({"notes": {}})
        assert "scroll_to_section" not in renderer.names()
        assert "set_side_panel" not in renderer.names()

    def test_invalid_state_raises(self, model):
        with pytest.raises(ValidationError):
            model.restore(
                {"checkpointRows": {"checkpoint-1": [{"id": "1.3"}, {"id": "1.3"}]}}
            )

    def test_restore_flat_document(self, model):
        model.restore_document(
            {"sessionKey": "OLD", "textareas": {"textarea-1.1": "flat"}}
        )
        assert model.row("1.1").notes == "flat"


class TestRecords:
    def test_record_round_trip(self):
        row = TaskRow(
            id="1.3",
            checkpoint_id="checkpoint-1",
            task="t",
            status=TaskStatusState(TaskStatus.DONE, StatusFlag.ACTIVE_MANUAL),
            is_manual=True,
        )
        restored = TaskRow.from_record("checkpoint-1", row.to_record())
        assert restored.status == row.status
        assert restored.restart_visible is True


def test_recording_renderer_tracks_focus():
    renderer = RecordingRenderer()
    renderer.focus("status-1.1")
    assert renderer.focused == "status-1.1"
