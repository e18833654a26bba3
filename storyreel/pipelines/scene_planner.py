"""
Storyreel Scene Planner

First half of the shots stage: an optional analysis call that resolves
"auto" duration and audio, then the scene breakdown call.
"""

import json
import re
from typing import Any, Dict, Optional, Tuple

from storyreel.core.config import PipelineConfig
from storyreel.core.constants import DEFAULT_TARGET_DURATION, AudioType, StageTag
from storyreel.core.exceptions import LLMResponseError
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.pipelines.base_stage import ask_llm
from storyreel.pipelines.prompts import StagePromptLibrary as P
from storyreel.project.models import ConfigInput, ScenePlan
from storyreel.project.state import ProjectState

logger = get_logger("pipelines.scene_planner")

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_duration(value: Any, default: int = DEFAULT_TARGET_DURATION) -> int:
    """Leading integer of a duration value ("90", "90s", 90.5); default when absent or zero."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value) or default
    match = _LEADING_INT.match(str(value or ""))
    if not match:
        return default
    return int(match.group(1)) or default


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the span from the first "{" to the last "}".

    Returns None when the reply has no braces at all.

    Raises:
        LLMResponseError: The span is not valid JSON
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Invalid JSON in response: {e.msg}") from e
    if not isinstance(data, dict):
        raise LLMResponseError("Invalid JSON in response: expected an object")
    return data


def needs_analysis(config: ConfigInput) -> bool:
    return config.auto_duration or config.audio_type == AudioType.AUTO.value


async def analyze_story(
    state: ProjectState,
    llm: LLMCaller,
    config: PipelineConfig,
) -> Tuple[int, str]:
    """
    Resolve target duration and audio type.

    When the project asks for "auto", the model recommends values and the
    recommendation is written back into the config input.
    """
    config_input = state.config_input
    target_duration = parse_duration(config_input.expected_duration)
    audio_type = config_input.audio_type

    if not needs_analysis(config_input):
        return target_duration, audio_type

    text = await ask_llm(
        llm, config, StageTag.ANALYSIS,
        P.render(P.ANALYSIS_SYSTEM),
        P.render(P.ANALYSIS_USER, script=state.script_input),
        project_id=None,
    )
    analysis = extract_json_object(text)
    if analysis is None:
        logger.warning("Analysis reply had no JSON; keeping requested values")
        return target_duration, audio_type

    recommended_duration = analysis.get("recommendedDuration")
    recommended_audio = analysis.get("recommendedAudio")

    if config_input.auto_duration:
        target_duration = parse_duration(recommended_duration)
    if audio_type == AudioType.AUTO.value:
        audio_type = recommended_audio or AudioType.NARRATION.value

    config_input.ai_recommended_duration = (
        parse_duration(recommended_duration) if recommended_duration is not None else None
    )
    config_input.ai_recommended_audio = recommended_audio
    config_input.ai_reasoning = analysis.get("reasoning")
    config_input.resolved_audio_type = audio_type
    config_input.resolved_duration = target_duration
    state.update_config_input(config_input)

    logger.info(f"Analysis resolved {target_duration}s, audio={audio_type}")
    return target_duration, audio_type


async def plan_scenes(
    state: ProjectState,
    llm: LLMCaller,
    config: PipelineConfig,
) -> ScenePlan:
    """
    Produce the scene plan for the current script.

    Scenes are renumbered 1..n and the plan carries the resolved duration
    and audio type.

    Raises:
        LLMResponseError: The plan reply contains no JSON object
            or its scenes are not objects
    """
    target_duration, audio_type = await analyze_story(state, llm, config)

    text = await ask_llm(
        llm, config, StageTag.SCENE_PLAN,
        P.render(P.SCENE_PLAN_SYSTEM, duration=target_duration, audio_type=audio_type),
        P.render(
            P.SCENE_PLAN_USER,
            duration=target_duration,
            audio_type=audio_type,
            script=state.script_input,
        ),
        project_id=state.project_id,
    )
    data = extract_json_object(text)
    if data is None:
        raise LLMResponseError("No JSON in response")

    scenes = data.get("scenes") or []
    if not isinstance(scenes, list) or not all(isinstance(s, dict) for s in scenes):
        raise LLMResponseError("Invalid scene plan")

    plan = ScenePlan.from_dict(data)
    plan.resolved_duration = target_duration
    plan.resolved_audio_type = audio_type
    for index, scene in enumerate(plan.scenes):
        scene.scene = index + 1

    logger.info(f"Scene plan: {len(plan.scenes)} scenes for {target_duration}s")
    return plan
