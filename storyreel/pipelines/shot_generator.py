"""
Storyreel Shot Generator

Turns a scene plan into a numbered shot list. Scenes are sent in batches;
each reply is a loose text format parsed with regular expressions, then the
whole list is renumbered and its runtime reconciled against the target.
"""

import math
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from storyreel.core.constants import (
    DEFAULT_AVG_SHOT_LENGTH,
    DEFAULT_TIMING_GUIDE,
    DIALOGUE_AUDIO,
    MONTAGE_TIMING_MAX,
    MONTAGE_TIMING_MIN,
    NARRATION_AUDIO,
    NARRATION_WORDS_PER_SECOND,
    RECONCILE_OVER_RATIO,
    RECONCILE_UNDER_RATIO,
    SCENE_AVG_SHOT_LENGTH,
    SCENE_TIMING_GUIDE,
    STANDARD_TIMING_MAX,
    STANDARD_TIMING_MIN,
    AudioType,
    PipelineStage,
    SceneType,
    StageTag,
)
from storyreel.core.exceptions import LLMResponseError
from storyreel.core.logging_config import get_logger
from storyreel.pipelines.base_stage import BaseStage, StageSkipped, error_text
from storyreel.pipelines.prompts import StagePromptLibrary as P, fmt_number
from storyreel.pipelines.scene_planner import needs_analysis, parse_duration, plan_scenes
from storyreel.project.models import (
    ConfigInput,
    ProjectMetadata,
    SceneInfo,
    ScenePlan,
    Shot,
)
from storyreel.utils.text import clean_narration, strip_quotes

logger = get_logger("pipelines.shots")


# =============================================================================
# MARKERS
# =============================================================================

# Headers are matched in upper case anywhere, or in any case at line start,
# so prose like "a wide shot 2 seconds later" does not split a block.
_SCENE_MARK = r"(?:^[ \t*#]*(?i:scene)|\bSCENE)\s+"
_SHOT_MARK = r"(?:^[ \t*#]*(?i:shot)|\bSHOT)\s+"
FIELD_LABELS = r"FRAMING|TIMING|BEAT|DESCRIPTION|VO|DIALOGUE"

_FIELD_END = (
    r"(?=(?:^[ \t*#]*(?i:" + FIELD_LABELS + r")|\b(?:" + FIELD_LABELS + r")):"
    r"|^[ \t*#]*(?i:scene_vo)|\bSCENE_VO"
    r"|" + _SHOT_MARK + r"\d|" + _SCENE_MARK + r"\d|\Z)"
)

SCENE_SPLIT = re.compile(_SCENE_MARK + r"(\d+)", re.MULTILINE)
SHOT_SPLIT = re.compile(_SHOT_MARK + r"(\d+)", re.MULTILINE)
SCENE_VO = re.compile(
    r"(?i:SCENE_VO)[:\s]+(.+?)(?=" + _SCENE_MARK + r"\d|\Z)",
    re.DOTALL | re.MULTILINE,
)

FRAMING = re.compile(r"(?i:FRAMING):\s*(.+)")
TIMING = re.compile(r"(?i:TIMING):\s*(\d+(?:\.\d+)?|\.\d+)")
BEAT = re.compile(r"(?i:BEAT):\s*(.+)")
DESCRIPTION = re.compile(r"(?i:DESCRIPTION):\s*(.+?)" + _FIELD_END, re.DOTALL | re.MULTILINE)
VO = re.compile(r"(?<!\w)(?i:VO):\s*(.+?)" + _FIELD_END, re.DOTALL | re.MULTILINE)
DIALOGUE = re.compile(r"(?i:DIALOGUE):\s*(.+?)" + _FIELD_END, re.DOTALL | re.MULTILINE)


def _group(match: Optional[re.Match]) -> str:
    return match.group(1).strip() if match else ""


def round_tenth(value: float) -> float:
    """Round to one decimal, halves away from zero."""
    return math.floor(value * 10 + 0.5) / 10


def clamp_timing(timing: float, is_montage: bool) -> float:
    if is_montage:
        return max(MONTAGE_TIMING_MIN, min(MONTAGE_TIMING_MAX, timing))
    return max(STANDARD_TIMING_MIN, min(STANDARD_TIMING_MAX, timing))


def min_vo_duration(vo: str) -> float:
    """Seconds needed to read the narration aloud, rounded up to 0.1."""
    word_count = len(vo.split())
    return math.ceil(word_count / NARRATION_WORDS_PER_SECOND * 10) / 10


# =============================================================================
# PROMPT BUILDING
# =============================================================================

def target_shot_count(scene: SceneInfo) -> int:
    if scene.target_shots:
        return scene.target_shots
    avg = SCENE_AVG_SHOT_LENGTH.get(scene.type, DEFAULT_AVG_SHOT_LENGTH)
    return int(math.floor(scene.duration / avg + 0.5))


def build_scene_prompt(scenes: Sequence[SceneInfo]) -> str:
    """Scene sections for one shots call."""
    return "\n\n".join(
        P.render(
            P.SCENE_SECTION,
            scene=s.scene,
            type=s.type,
            location=s.location,
            duration=fmt_number(s.duration),
            target_shots=target_shot_count(s),
            timing_guide=SCENE_TIMING_GUIDE.get(s.type, DEFAULT_TIMING_GUIDE),
            summary=s.summary,
        )
        for s in scenes
    )


def audio_line_instructions(audio_type: str) -> str:
    """VO / DIALOGUE format lines for the requested audio type."""
    instructions = ""
    if audio_type in NARRATION_AUDIO:
        instructions += P.VO_INSTRUCTION
    if audio_type in DIALOGUE_AUDIO:
        instructions += P.DIALOGUE_INSTRUCTION
    return instructions


def audio_style_guidelines(audio_type: str, config: ConfigInput) -> str:
    """Narration and dialogue style guides built from the config choices."""
    guidelines = ""
    if audio_type in NARRATION_AUDIO:
        complexity = config.narration_complexity or config.content_complexity or "standard"
        guidelines += P.render(
            P.NARRATION_STYLE,
            pace=P.NARRATION_PACE.get(config.narration_pace, P.NARRATION_PACE_DEFAULT),
            complexity=P.NARRATION_COMPLEXITY.get(complexity, P.NARRATION_COMPLEXITY_DEFAULT),
        )
    if audio_type in DIALOGUE_AUDIO:
        complexity = config.dialogue_complexity or config.content_complexity or "standard"
        guidelines += P.render(
            P.DIALOGUE_STYLE,
            amount=P.DIALOGUE_AMOUNT.get(config.dialogue_intensity, P.DIALOGUE_AMOUNT_DEFAULT),
            complexity=P.DIALOGUE_COMPLEXITY.get(complexity, P.DIALOGUE_COMPLEXITY_DEFAULT),
        )
    return guidelines


# =============================================================================
# PARSING
# =============================================================================

@dataclass
class ShotFields:
    """Raw fields of one SHOT block."""
    framing: str = ""
    timing: Optional[float] = None
    beat: str = ""
    description: str = ""
    vo: str = ""
    dialogue: str = ""


def parse_shot_fields(block: str) -> ShotFields:
    """Read the labelled fields of one shot block."""
    timing_match = TIMING.search(block)
    return ShotFields(
        framing=_group(FRAMING.search(block)),
        timing=float(timing_match.group(1)) if timing_match else None,
        beat=_group(BEAT.search(block)),
        description=_group(DESCRIPTION.search(block)),
        vo=_group(VO.search(block)),
        dialogue=_group(DIALOGUE.search(block)),
    )


def parse_scene_voiceovers(text: str) -> Dict[int, str]:
    """SCENE_VO texts keyed by the last SCENE header before each."""
    voiceovers: Dict[int, str] = {}
    for match in SCENE_VO.finditer(text):
        headers = SCENE_SPLIT.findall(text, 0, match.start())
        if headers:
            voiceovers[int(headers[-1])] = match.group(1).strip()
    return voiceovers


def fallback_description(framing: str, beat: str) -> str:
    framing = framing or "Medium shot"
    if beat:
        return f"{framing} showing {beat.lower()}."
    return f"{framing} capturing the action."


def parse_shot_response(text: str, scenes: Sequence[SceneInfo]) -> List[Shot]:
    """
    Parse a shots reply into Shot records.

    Shots without a timing are dropped. Montage shots lose per-shot audio
    and shot 1 of a montage scene carries the scene voice-over.
    """
    scene_types = {s.scene: s.type for s in scenes}
    scene_vos = parse_scene_voiceovers(text)
    shots: List[Shot] = []
    dropped = 0

    scene_blocks = SCENE_SPLIT.split(text)
    for i in range(1, len(scene_blocks), 2):
        scene_num = int(scene_blocks[i])
        block = scene_blocks[i + 1] if i + 1 < len(scene_blocks) else ""
        is_montage = scene_types.get(scene_num) == SceneType.MONTAGE.value

        shot_blocks = SHOT_SPLIT.split(block)
        for j in range(1, len(shot_blocks), 2):
            shot_num = int(shot_blocks[j])
            fields = parse_shot_fields(shot_blocks[j + 1] if j + 1 < len(shot_blocks) else "")
            if fields.timing is None:
                dropped += 1
                continue

            vo = "" if is_montage else fields.vo
            description = fields.description
            if len(description) < 5:
                description = fallback_description(fields.framing, fields.beat)

            shot = Shot(
                id=f"2.{scene_num}.{shot_num}",
                scene=scene_num,
                shot_number=shot_num,
                framing=fields.framing,
                timing=fields.timing,
                beat=fields.beat,
                description=description,
                dialogue="" if is_montage else fields.dialogue,
                vo=clean_narration(strip_quotes(vo)),
                is_montage=is_montage,
            )

            if shot.vo and not is_montage:
                shot.timing = max(shot.timing, min_vo_duration(shot.vo))
            shot.timing = clamp_timing(shot.timing, is_montage)

            if is_montage and shot_num == 1 and scene_vos.get(scene_num):
                shot.scene_vo = clean_narration(strip_quotes(scene_vos[scene_num]))

            shots.append(shot)

    if dropped:
        logger.warning(f"Dropped {dropped} shot block(s) without TIMING")
    return shots


# =============================================================================
# POST-PROCESSING
# =============================================================================

def renumber_shots(shots: Sequence[Shot]) -> Tuple[List[Shot], int]:
    """
    Renumber scenes 1..n in ascending original order and shots 1..m within
    each scene, keeping their relative order. Returns (shots, scene count).
    """
    by_scene: Dict[int, List[Shot]] = OrderedDict()
    for shot in shots:
        by_scene.setdefault(shot.scene, []).append(shot)

    fixed: List[Shot] = []
    for new_scene, old_scene in enumerate(sorted(by_scene), start=1):
        for new_shot, shot in enumerate(by_scene[old_scene], start=1):
            shot.scene = new_scene
            shot.shot_number = new_shot
            shot.id = f"2.{new_scene}.{new_shot}"
            fixed.append(shot)
    return fixed, len(by_scene)


def total_runtime(shots: Sequence[Shot]) -> float:
    return sum(s.timing for s in shots)


def reconcile_durations(shots: Sequence[Shot], target_duration: float) -> float:
    """
    Rescale timings when the runtime misses the target band.

    Outside [0.85, 1.30] x target every timing is multiplied by
    target / total, rounded to 0.1 and clamped again. Returns the new total.
    """
    total = total_runtime(shots)
    if total <= 0:
        return total

    under = target_duration * RECONCILE_UNDER_RATIO
    over = target_duration * RECONCILE_OVER_RATIO
    if under <= total <= over:
        return total

    ratio = target_duration / total
    logger.info(f"Runtime {total:.1f}s outside [{under:.1f}, {over:.1f}]; scaling by {ratio:.3f}")
    for shot in shots:
        shot.timing = clamp_timing(round_tenth(shot.timing * ratio), bool(shot.is_montage))
    return total_runtime(shots)


# =============================================================================
# STAGE
# =============================================================================

class ShotsStage(BaseStage):
    """Scene plan plus batched shot generation."""

    name = "shots"

    def check_prerequisites(self) -> None:
        pass

    def failure_message(self, exc: BaseException) -> str:
        return error_text(exc)

    async def generate_shots_for_scenes(self, plan: ScenePlan, scene_numbers: Sequence[int]) -> List[Shot]:
        """One shots call for a batch of planned scenes."""
        scenes = [s for s in plan.scenes if s.scene in scene_numbers]
        audio_type = plan.resolved_audio_type or self.state.config_input.audio_type

        system = P.render(
            P.SHOTS_SYSTEM,
            audio_instructions=audio_line_instructions(audio_type),
            audio_guidelines=audio_style_guidelines(audio_type, self.state.config_input),
        )
        text = await self.ask(
            StageTag.SHOTS,
            system,
            P.render(P.SHOTS_USER, scenes=build_scene_prompt(scenes)),
        )
        shots = parse_shot_response(text, scenes)
        logger.info(f"Scenes {list(scene_numbers)}: parsed {len(shots)} shots")
        return shots

    async def _execute(self) -> dict:
        state = self.state
        if not state.script_input.strip():
            raise StageSkipped("No script to plan")

        state.set_current_stage(PipelineStage.SHOTS_IN_PROGRESS.value)
        config_input = state.config_input
        self.report_progress(
            0, 0,
            "Analyzing story..." if needs_analysis(config_input) else "Planning scenes...",
        )

        plan = await plan_scenes(state, self.llm, self.config)
        if not plan.scenes:
            raise LLMResponseError("No scenes generated")

        target_duration = plan.resolved_duration or parse_duration(config_input.expected_duration)
        total_scenes = len(plan.scenes)
        batch_size = self.config.scenes_per_batch

        all_shots: List[Shot] = []
        for start in range(0, total_scenes, batch_size):
            batch = [s.scene for s in plan.scenes[start:start + batch_size]]
            self.report_progress(
                start, total_scenes,
                f"Generating scenes {', '.join(str(n) for n in batch)}...",
            )
            all_shots.extend(await self.generate_shots_for_scenes(plan, batch))

        shots, scene_count = renumber_shots(all_shots)
        runtime = reconcile_durations(shots, target_duration)

        show_recommendations = (
            config_input.auto_duration or config_input.audio_type == AudioType.AUTO.value
        )
        data = state.project_data
        data.script = state.script_input
        data.config = ConfigInput.from_dict(config_input.to_dict())
        data.shots = shots
        data.metadata = ProjectMetadata(
            total_shots=len(shots),
            total_scenes=scene_count,
            estimated_runtime=round_tenth(runtime),
            target_duration=target_duration,
            resolved_audio_type=plan.resolved_audio_type or config_input.audio_type,
            aspect_ratio=config_input.aspect_ratio,
            scene_plan=plan,
            ai_recommendations={
                "duration": config_input.ai_recommended_duration,
                "audio": config_input.ai_recommended_audio,
                "reasoning": config_input.ai_reasoning,
            } if show_recommendations else None,
        )
        state.update_project_data(data)
        state.expanded_sections = {"stage2": True}
        state.set_current_stage(PipelineStage.SHOTS.value)

        return {
            "shots": len(shots),
            "scenes": scene_count,
            "runtime": round_tenth(runtime),
            "target": target_duration,
        }
