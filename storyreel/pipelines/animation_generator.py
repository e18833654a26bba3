"""
Storyreel Animation Generator

One motion prompt per shot, batched by scene like the frames stage.
"""

from typing import List

from storyreel.core.constants import PipelineStage, StageTag
from storyreel.core.exceptions import PrerequisiteError
from storyreel.core.logging_config import get_logger
from storyreel.pipelines.base_stage import BaseStage, StageSkipped
from storyreel.pipelines.frame_generator import character_section, merge_by_shot, next_batch
from storyreel.pipelines.prompts import StagePromptLibrary as P, fmt_number
from storyreel.project.models import Animation, Character, Shot
from storyreel.utils.matching import characters_in_text
from storyreel.utils.text import clean_asterisks

logger = get_logger("pipelines.animation")


def animation_user_prompt(
    shot: Shot,
    characters: List[Character],
    character_template: str = P.CHARACTERS_SECTION,
) -> str:
    prompt = P.render(
        P.ANIMATION_USER,
        duration=fmt_number(shot.timing),
        description=shot.description,
    )
    return prompt + character_section(characters, character_template)


def make_animation(shot: Shot, text: str) -> Animation:
    return Animation(
        id=f"8.{shot.scene}.{shot.shot_number}",
        scene=shot.scene,
        shot_number=shot.shot_number,
        duration=shot.timing,
        animation_prompt=clean_asterisks((text or "").strip()),
    )


class AnimationStage(BaseStage):
    """Animation prompts for the next batch of scenes."""

    name = "animation"

    def check_prerequisites(self) -> None:
        if not self.state.project_data.shots:
            raise PrerequisiteError("Animation needs a shot list; run the shots stage first")

    async def _execute(self) -> dict:
        state = self.state
        data = state.project_data
        completed = state.batch_progress.stage8_scenes_completed
        to_process = next_batch(data, completed, self.config.scenes_per_batch)
        if not to_process:
            raise StageSkipped("All scenes already have animation prompts")

        shots = [s for s in data.shots if s.scene in to_process]
        animations: List[Animation] = []

        try:
            for i, shot in enumerate(shots):
                self.report_progress(i + 1, len(shots), f"Animation {i + 1}/{len(shots)}...")
                # named characters only, no group expansion
                characters = characters_in_text(data.characters, shot.description)
                text = await self.ask(
                    StageTag.ANIMATION,
                    P.ANIMATION_SYSTEM,
                    animation_user_prompt(shot, characters),
                )
                animations.append(make_animation(shot, text))
        except Exception:
            if animations:
                logger.warning(f"Keeping {len(animations)} animation prompt(s) made before the failure")
                data.animations = merge_by_shot(data.animations, animations)
                state.update_project_data(data)
                state.expanded_sections["stage8"] = True
            raise

        data.animations = merge_by_shot(data.animations, animations)
        state.update_project_data(data)
        state.batch_progress.stage8_scenes_completed = completed + len(to_process)
        state.update_batch_progress(state.batch_progress)
        state.expanded_sections["stage8"] = True
        state.set_current_stage(PipelineStage.ANIMATION.value)

        logger.info(f"Animation prompts for scenes {to_process}: {len(animations)}")
        return {
            "animations": len(animations),
            "scenes": to_process,
            "scenesCompleted": state.batch_progress.stage8_scenes_completed,
            "totalScenes": len(data.scene_numbers()),
        }
