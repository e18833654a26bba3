"""
Tests for Project State

Tests for storyreel/project/state.py
"""

import asyncio

import pytest
from unittest.mock import MagicMock

from storyreel.core.exceptions import PersistenceError, ProjectNotFoundError
from storyreel.project.models import ConfigInput, ProjectData
from storyreel.project.state import ProjectState


class TestAutosave:
    """Debounced autosave to the store."""

    @pytest.mark.asyncio
    async def test_changes_are_saved_after_delay(self, store):
        state = ProjectState(store, autosave_delay=0.01)
        record = await state.create("Fly Story")

        state.update_script_input("Two flies look for breakfast.")
        await asyncio.sleep(0.1)

        assert store.get(record["id"])["scriptInput"] == "Two flies look for breakfast."
        assert not state.has_changes

    @pytest.mark.asyncio
    async def test_changes_are_debounced(self):
        store = MagicMock()
        state = ProjectState(store, autosave_delay=0.05)
        state.project_id = "p1"

        state.update_script_input("one")
        state.update_script_input("two")
        state.update_config_input(ConfigInput(style_preference="Ink"))
        await asyncio.sleep(0.15)

        assert store.update.call_count == 1
        saved = store.update.call_args[0][1]
        assert saved["scriptInput"] == "two"
        assert saved["configInput"]["stylePreference"] == "Ink"

    @pytest.mark.asyncio
    async def test_unsaved_project_with_shots_is_auto_created(self, store, sample_project_data):
        state = ProjectState(store, autosave_delay=0.01)

        state.update_project_data(sample_project_data)
        await asyncio.sleep(0.1)

        assert state.project_id is not None
        assert store.get(state.project_id)["name"].startswith("Auto-save ")

    @pytest.mark.asyncio
    async def test_unsaved_project_without_shots_is_not_created(self, store):
        state = ProjectState(store, autosave_delay=0.01)

        state.update_script_input("draft")
        await state.flush()

        assert state.project_id is None
        assert store.list() == []

    @pytest.mark.asyncio
    async def test_save_failure_sets_error_and_keeps_memory(self):
        store = MagicMock()
        store.update.side_effect = PersistenceError("Disk full")
        state = ProjectState(store, autosave_delay=0.01)
        state.project_id = "p1"

        state.update_script_input("keep me")
        await state.flush()

        assert state.error == "Disk full"
        assert state.script_input == "keep me"
        assert state.has_changes

    @pytest.mark.asyncio
    async def test_close_drops_pending_save(self):
        store = MagicMock()
        state = ProjectState(store, autosave_delay=0.05)
        state.project_id = "p1"

        state.update_script_input("never saved")
        state.close()
        await asyncio.sleep(0.1)

        store.update.assert_not_called()


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_restores_and_derives_stage(self, store, sample_project_data):
        record = store.create("Flies", {
            "scriptInput": "story",
            "projectData": sample_project_data.to_dict(),
            "completedPrompts": {"2.1.1": True},
        })
        state = ProjectState(store)

        state.load(record["id"])

        assert state.project_id == record["id"]
        assert state.name == "Flies"
        assert len(state.project_data.shots) == 3
        assert state.current_stage == 6
        assert state.completed_prompts == {"2.1.1": True}
        assert not state.has_changes

    def test_load_missing_sets_error(self, store):
        state = ProjectState(store)

        with pytest.raises(ProjectNotFoundError):
            state.load("missing")
        assert "missing" in state.error

    def test_new_project_resets(self, state):
        state.project_id = "p1"
        state.error = "old"

        state.new_project()

        assert state.project_id is None
        assert state.project_data.shots == []
        assert state.current_stage == 0
        assert state.error is None


class TestEdits:

    def test_toggle_complete(self, state):
        assert state.toggle_complete("4.1") is True
        assert state.toggle_complete("4.1") is False

    def test_edit_shot_timing(self, state):
        state.edit_shot_field("2.1.1", "timing", "2.5")
        assert state.project_data.shots[0].timing == 2.5

        state.edit_shot_field("2.1.1", "timing", "abc")
        assert state.project_data.shots[0].timing == 2.5

    def test_edit_shot_rejects_unknown_field(self, state):
        with pytest.raises(ValueError):
            state.edit_shot_field("2.1.1", "scene", 4)

    def test_edit_prompts(self, state):
        state.edit_prompt("character", "4.2", "Zip, now red")
        state.edit_prompt("style", "", "Art Style: Ink")

        assert state.project_data.characters[1].visual_prompt == "Zip, now red"
        assert state.project_data.style.ai_generation_prompt == "Art Style: Ink"

    def test_edit_frame_needs_field(self, state):
        with pytest.raises(ValueError):
            state.edit_prompt("frame", "7.1.1", "text")

    def test_record_shape(self, state):
        record = state.to_record()

        assert set(record) == {
            "name", "scriptInput", "configInput", "projectData",
            "batchProgress", "chatMessages", "completedPrompts",
        }
        assert ProjectData.from_dict(record["projectData"]).shots[0].id == "2.1.1"
