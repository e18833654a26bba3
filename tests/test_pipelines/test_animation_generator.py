"""Tests for storyreel/pipelines/animation_generator.py"""

import pytest

from storyreel.core.config import PipelineConfig
from storyreel.core.exceptions import LLMResponseError
from storyreel.pipelines.animation_generator import (
    AnimationStage,
    animation_user_prompt,
    make_animation,
)
from storyreel.pipelines.base_stage import StageStatus
from storyreel.project.models import Animation


class TestAnimationPrompts:

    def test_user_prompt_lists_named_characters(self, sample_project_data):
        shot = sample_project_data.shots[1]

        prompt = animation_user_prompt(shot, sample_project_data.characters[:2])

        assert prompt.startswith("Duration: 3s\nDescription: Zip lands on the golden pear")
        assert "- Buzz\n- Zip" in prompt

    def test_make_animation(self, sample_project_data):
        shot = sample_project_data.shots[2]

        animation = make_animation(shot, "  **Camera** tracks the flies.  ")

        assert animation.id == "8.2.1"
        assert animation.duration == 2.0
        assert animation.animation_prompt == "Camera tracks the flies."


class TestAnimationStage:

    @pytest.mark.asyncio
    async def test_all_scenes_in_one_batch(self, state, llm_factory):
        llm = llm_factory(by_stage={"animation": "Slow push in as the wings flicker."})

        result = await AnimationStage(state, llm, PipelineConfig()).run()

        assert result.status == StageStatus.COMPLETED
        assert result.metadata["animations"] == 3
        assert result.metadata["scenesCompleted"] == 2
        assert [a.id for a in state.project_data.animations] == ["8.1.1", "8.1.2", "8.2.1"]
        assert state.current_stage == 7
        assert state.expanded_sections["stage8"] is True

    @pytest.mark.asyncio
    async def test_group_counts_are_not_expanded(self, state, llm_factory):
        llm = llm_factory(by_stage={"animation": "Motion."})

        await AnimationStage(state, llm, PipelineConfig()).run()

        # shot 2.2.1 only says "All three"
        assert "CHARACTERS IN THIS SHOT" not in llm.calls[2]["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_rerun_replaces_existing_prompts(self, state, llm_factory):
        state.project_data.animations = [
            Animation(id="8.1.1", scene=1, shot_number=1, animation_prompt="stale"),
        ]
        llm = llm_factory(by_stage={"animation": "Fresh motion."})

        await AnimationStage(state, llm, PipelineConfig()).run()

        prompts = {a.id: a.animation_prompt for a in state.project_data.animations}
        assert prompts == {"8.1.1": "Fresh motion.", "8.1.2": "Fresh motion.", "8.2.1": "Fresh motion."}

    @pytest.mark.asyncio
    async def test_failure_keeps_partial_batch(self, state, llm_factory):
        llm = llm_factory(by_stage={"animation": ["One.", "Two.", LLMResponseError("Empty response")]})

        result = await AnimationStage(state, llm, PipelineConfig()).run()

        assert result.status == StageStatus.FAILED
        assert state.error == "Animation failed: Empty response"
        assert len(state.project_data.animations) == 2
        assert state.batch_progress.stage8_scenes_completed == 0

    @pytest.mark.asyncio
    async def test_skipped_when_done(self, state, fake_llm):
        state.batch_progress.stage8_scenes_completed = 2

        result = await AnimationStage(state, fake_llm, PipelineConfig()).run()

        assert result.status == StageStatus.SKIPPED
        assert fake_llm.calls == []
