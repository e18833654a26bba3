"""
Tests for the Shot Generator

Tests for storyreel/pipelines/shot_generator.py
"""

import pytest

from storyreel.core.config import PipelineConfig
from storyreel.pipelines.base_stage import StageStatus
from storyreel.pipelines.shot_generator import (
    ShotsStage,
    audio_line_instructions,
    build_scene_prompt,
    clamp_timing,
    min_vo_duration,
    parse_shot_fields,
    parse_shot_response,
    reconcile_durations,
    renumber_shots,
    round_tenth,
    target_shot_count,
)
from storyreel.project.models import ConfigInput, SceneInfo, Shot
from storyreel.project.state import ProjectState

MEDIUM = [SceneInfo(scene=1, type="MEDIUM", location="Kitchen", duration=10)]


def _shots(*timings, montage=False):
    return [
        Shot(id=f"2.1.{i + 1}", scene=1, shot_number=i + 1, timing=t, is_montage=montage)
        for i, t in enumerate(timings)
    ]


class TestShotParsing:
    """Parsing of the loose shots format."""

    def test_single_block(self):
        text = (
            "SCENE 1\n"
            "SHOT 1\n"
            "FRAMING: Wide shot\n"
            "TIMING: 3.5\n"
            "BEAT: Arrival\n"
            "DESCRIPTION: Buzz drifts through the open window.\n"
            "VO: \"Summer had come to the farm.\"\n"
        )

        shots = parse_shot_response(text, MEDIUM)

        assert len(shots) == 1
        shot = shots[0]
        assert shot.id == "2.1.1"
        assert shot.framing == "Wide shot"
        assert shot.timing == 3.5
        assert shot.beat == "Arrival"
        assert shot.description == "Buzz drifts through the open window."
        assert shot.vo == "Summer had come to the farm."
        assert shot.is_montage is False

    def test_prose_mentions_do_not_split_fields(self):
        text = (
            "SCENE 1\n"
            "SHOT 1\n"
            "FRAMING: Medium shot\n"
            "TIMING: 3\n"
            "DESCRIPTION: A wide shot 2 seconds later shows scene 3 of the play, "
            "and the camera keeps its devotion: steady.\n"
            "SHOT 2\n"
            "FRAMING: Close-up\n"
            "TIMING: 2\n"
            "DESCRIPTION: Zip blinks.\n"
        )

        shots = parse_shot_response(text, MEDIUM)

        assert [s.shot_number for s in shots] == [1, 2]
        assert shots[0].description.startswith("A wide shot 2 seconds later shows scene 3")
        assert shots[0].description.endswith("devotion: steady.")
        assert shots[1].description == "Zip blinks."

    def test_block_without_timing_is_dropped(self):
        text = "SCENE 1\nSHOT 1\nFRAMING: Wide\nDESCRIPTION: Nothing here to time.\n"

        assert parse_shot_response(text, MEDIUM) == []

    def test_short_description_gets_fallback(self):
        text = "SCENE 1\nSHOT 1\nFRAMING: Close-up\nTIMING: 2\nBEAT: The Landing\nDESCRIPTION: ok\n"

        shot = parse_shot_response(text, MEDIUM)[0]

        assert shot.description == "Close-up showing the landing."

    def test_timings_are_clamped(self):
        text = "SCENE 1\nSHOT 1\nTIMING: 12\nDESCRIPTION: A very long hold.\nSHOT 2\nTIMING: .5\nDESCRIPTION: A blink of an eye.\n"

        shots = parse_shot_response(text, MEDIUM)

        assert [s.timing for s in shots] == [6.0, 1.5]

    def test_vo_lengthens_shot(self):
        words = " ".join(["word"] * 10)
        text = f"SCENE 1\nSHOT 1\nTIMING: 2\nDESCRIPTION: Buzz listens closely.\nVO: {words}\n"

        assert parse_shot_response(text, MEDIUM)[0].timing == 4.0

    def test_montage_scene(self):
        scenes = [SceneInfo(scene=2, type="MONTAGE", location="Garden", duration=3)]
        text = (
            "SCENE 2\n"
            "SHOT 1\nTIMING: 3\nDESCRIPTION: Crumbs scatter on the table.\nVO: dropped line\n"
            "SHOT 2\nTIMING: 0.2\nDESCRIPTION: Sunlight sweeps the floor.\nDIALOGUE: BUZZ: hi\n"
            "SCENE_VO: \"Days blurred together, one crumb at a time.\"\n"
        )

        shots = parse_shot_response(text, scenes)

        assert [s.timing for s in shots] == [1.5, 0.5]
        assert all(s.is_montage for s in shots)
        assert shots[0].vo == ""
        assert shots[1].dialogue == ""
        assert shots[1].description == "Sunlight sweeps the floor."
        assert shots[0].scene_vo == "Days blurred together, one crumb at a time."
        assert shots[1].scene_vo is None

    def test_vo_label_inside_words_is_ignored(self):
        fields = parse_shot_fields("TIMING: 2\nDESCRIPTION: The AVOCADO rolls: slowly.\nDIALOGUE: ZIP: Wow\n")

        assert fields.description == "The AVOCADO rolls: slowly."
        assert fields.vo == ""
        assert fields.dialogue == "ZIP: Wow"

    def test_multiple_scenes(self):
        scenes = MEDIUM + [SceneInfo(scene=2, type="FAST", location="Path", duration=5)]
        text = (
            "SCENE 1\nSHOT 1\nTIMING: 2\nDESCRIPTION: First scene shot.\n\n"
            "SCENE 2\nSHOT 1\nTIMING: 2\nDESCRIPTION: Second scene shot.\n"
            "SHOT 2\nTIMING: 2\nDESCRIPTION: Second scene again.\n"
        )

        shots = parse_shot_response(text, scenes)

        assert [s.id for s in shots] == ["2.1.1", "2.2.1", "2.2.2"]


class TestTiming:

    def test_round_tenth_halves_up(self):
        assert round_tenth(2.25) == 2.3
        assert round_tenth(2.24) == 2.2

    def test_clamps(self):
        assert clamp_timing(0.1, is_montage=True) == 0.5
        assert clamp_timing(4, is_montage=True) == 1.5
        assert clamp_timing(1.0, is_montage=False) == 1.5
        assert clamp_timing(9, is_montage=False) == 6.0

    def test_min_vo_duration(self):
        assert min_vo_duration("one two three four five") == 2.0
        assert min_vo_duration("one two three") == 1.2

    def test_target_shot_count(self):
        assert target_shot_count(SceneInfo(scene=1, type="SLOW", duration=20)) == 5
        assert target_shot_count(SceneInfo(scene=1, type="FAST", duration=7)) == 4
        assert target_shot_count(SceneInfo(scene=1, type="MONTAGE", duration=3)) == 3
        assert target_shot_count(SceneInfo(scene=1, type="FAST", duration=7, target_shots=9)) == 9


class TestReconcile:
    """Runtime reconciliation against the target duration."""

    def test_inside_band_is_untouched(self):
        shots = _shots(5, 5)

        assert reconcile_durations(shots, 10) == 10
        assert [s.timing for s in shots] == [5, 5]

    def test_band_edges_are_inclusive(self):
        assert reconcile_durations(_shots(4.25, 4.25), 10) == 8.5
        assert reconcile_durations(_shots(6.0, 6.0, 1.0), 10) == 13.0

    def test_short_runtime_scaled_up(self):
        shots = _shots(2, 2, 2)

        total = reconcile_durations(shots, 12)

        assert [s.timing for s in shots] == [4.0, 4.0, 4.0]
        assert total == 12.0

    def test_long_runtime_scaled_down_and_clamped(self):
        shots = _shots(6, 6, 6, 6)

        total = reconcile_durations(shots, 8)

        assert [s.timing for s in shots] == [2.0, 2.0, 2.0, 2.0]
        assert total == 8.0

    def test_scaling_respects_clamps(self):
        shots = _shots(1.5, 1.5)

        reconcile_durations(shots, 30)

        assert [s.timing for s in shots] == [6.0, 6.0]

    def test_montage_clamps(self):
        shots = _shots(1.5, 1.5, montage=True)

        reconcile_durations(shots, 1)

        assert [s.timing for s in shots] == [0.5, 0.5]

    def test_empty(self):
        assert reconcile_durations([], 60) == 0


class TestRenumber:

    def test_scenes_and_shots_renumbered(self):
        shots = [
            Shot(id="x", scene=4, shot_number=7),
            Shot(id="y", scene=2, shot_number=3),
            Shot(id="z", scene=4, shot_number=9),
        ]

        fixed, scene_count = renumber_shots(shots)

        assert scene_count == 2
        assert [(s.scene, s.shot_number, s.id) for s in fixed] == [
            (1, 1, "2.1.1"),
            (2, 1, "2.2.1"),
            (2, 2, "2.2.2"),
        ]


class TestPromptBuilding:

    def test_scene_prompt(self):
        prompt = build_scene_prompt([SceneInfo(scene=2, type="SLOW", location="Barn", duration=8, summary="Rest")])

        assert "SCENE 2" in prompt
        assert "Barn" in prompt
        assert "3-5s per shot" in prompt

    def test_audio_instructions(self):
        assert audio_line_instructions("none") == ""
        assert "VO:" in audio_line_instructions("narration")
        assert "DIALOGUE:" in audio_line_instructions("both")


class TestShotsStage:

    @pytest.mark.asyncio
    async def test_blank_script_is_skipped(self, fake_llm):
        stage = ShotsStage(ProjectState(), fake_llm, PipelineConfig())

        result = await stage.run()

        assert result.status == StageStatus.SKIPPED
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_batches_by_scene(self, llm_factory, make_shot_block):
        plan = (
            '{"scenes": ['
            + ", ".join(
                f'{{"scene": {n}, "type": "MEDIUM", "location": "Room {n}", "duration": 5, "summary": "Beat {n}"}}'
                for n in range(1, 5)
            )
            + '], "totalDuration": 20, "audioType": "none"}'
        )

        def shots_reply(call):
            content = call["messages"][0]["content"]
            scenes = [n for n in range(1, 5) if f"SCENE {n}" in content]
            return "\n".join(
                f"SCENE {n}\n" + make_shot_block(1, 2.5, f"Moment {n} one") + "\n" + make_shot_block(2, 2.5, f"Moment {n} two")
                for n in scenes
            )

        llm = llm_factory(by_stage={"scene-plan": plan, "shots": shots_reply})
        state = ProjectState()
        state.script_input = "A story."
        state.config_input = ConfigInput(expected_duration="20", audio_type="none")

        result = await ShotsStage(state, llm, PipelineConfig(scenes_per_batch=3)).run()

        assert result.status == StageStatus.COMPLETED
        assert llm.stages == ["scene-plan", "shots", "shots"]
        assert len(state.project_data.shots) == 8
        assert state.project_data.metadata.total_scenes == 4
        assert state.project_data.metadata.estimated_runtime == 20.0
        assert state.current_stage == 2

    @pytest.mark.asyncio
    async def test_failure_banner_is_bare_message(self, llm_factory):
        llm = llm_factory(by_stage={"scene-plan": "I cannot plan this."})
        state = ProjectState()
        state.script_input = "A story."
        state.config_input = ConfigInput(expected_duration="30", audio_type="none")

        result = await ShotsStage(state, llm, PipelineConfig()).run()

        assert result.status == StageStatus.FAILED
        assert state.error == "No JSON in response"
        assert state.project_data.shots == []
