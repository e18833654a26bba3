"""
Storyreel Frame Generator

First/last still-frame prompts per shot, processed a batch of scenes at a
time. Each frame records which characters, backgrounds and items were handed
to the model so later views can link them without re-matching.
"""

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from storyreel.core.constants import PipelineStage, StageTag
from storyreel.core.exceptions import PrerequisiteError
from storyreel.core.logging_config import get_logger
from storyreel.pipelines.base_stage import BaseStage, StageSkipped
from storyreel.pipelines.prompts import StagePromptLibrary as P, fmt_number
from storyreel.project.models import (
    Background,
    Character,
    Frame,
    Item,
    ProjectData,
    Shot,
)
from storyreel.utils.matching import (
    scene_context,
    scene_location,
    select_shot_backgrounds,
    select_shot_characters,
    select_shot_items,
)
from storyreel.utils.text import clean_asterisks, get_clean_name

logger = get_logger("pipelines.frames")

FIRST_FRAME = re.compile(r"FIRST FRAME:\s*([\s\S]+?)(?=LAST FRAME:|$)", re.IGNORECASE)
LAST_FRAME = re.compile(r"LAST FRAME:\s*([\s\S]+?)$", re.IGNORECASE)


@dataclass
class FrameReferences:
    """Entities handed to the model for one shot."""
    characters: List[Character] = field(default_factory=list)
    backgrounds: List[Background] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)


def select_frame_references(data: ProjectData, shot: Shot) -> FrameReferences:
    """Characters with group expansion, backgrounds by scene location, items by name."""
    return FrameReferences(
        characters=select_shot_characters(shot, data.characters, scene_context(data, shot.scene)),
        backgrounds=select_shot_backgrounds(scene_location(data, shot.scene), data.backgrounds),
        items=select_shot_items(shot.description, data.items),
    )


def character_section(characters: Sequence[Character], template: str = P.CHARACTERS_SECTION) -> str:
    if not characters:
        return ""
    names = "\n".join(f"- {get_clean_name(c.name)}" for c in characters)
    return P.render(template, names=names)


def frame_user_prompt(
    shot: Shot,
    refs: FrameReferences,
    character_template: str = P.CHARACTERS_SECTION,
    items_template: str = P.ITEMS_SECTION,
) -> str:
    """Framing, duration and description plus the reference sections."""
    prompt = P.render(
        P.FRAMES_USER,
        framing=shot.framing,
        duration=fmt_number(shot.timing),
        description=shot.description,
    )
    prompt += character_section(refs.characters, character_template)
    if refs.backgrounds:
        prompt += P.render(P.BACKGROUND_SECTION, names=", ".join(b.name for b in refs.backgrounds))
    if refs.items:
        prompt += P.render(items_template, names=", ".join(i.name for i in refs.items))
    return prompt


def parse_frame_response(text: str, shot: Shot, refs: FrameReferences) -> Frame:
    """FIRST FRAME / LAST FRAME reply into a frame record, with fallbacks."""
    first_match = FIRST_FRAME.search(text)
    last_match = LAST_FRAME.search(text)
    first = first_match.group(1).strip() if first_match else ""
    last = last_match.group(1).strip() if last_match else ""

    return Frame(
        id=f"7.{shot.scene}.{shot.shot_number}",
        scene=shot.scene,
        shot_number=shot.shot_number,
        duration=shot.timing,
        first_frame=clean_asterisks(
            first or P.render(P.FRAME_FIRST_FALLBACK, framing=shot.framing, description=shot.description)
        ),
        last_frame=clean_asterisks(last or P.FRAME_LAST_FALLBACK),
        character_ids=[c.id for c in refs.characters],
        background_ids=[b.id for b in refs.backgrounds],
        item_ids=[i.id for i in refs.items],
    )


def merge_by_shot(existing: Sequence, new: Sequence) -> list:
    """Existing records minus those re-made for the same shots, then the new ones."""
    keys = {r.key for r in new}
    return [r for r in existing if r.key not in keys] + list(new)


def next_batch(data: ProjectData, completed: int, batch_size: int) -> List[int]:
    """Scene numbers of the next unprocessed batch, ascending."""
    return data.scene_numbers()[completed:completed + batch_size]


class FramesStage(BaseStage):
    """First/last frame prompts for the next batch of scenes."""

    name = "frames"

    def check_prerequisites(self) -> None:
        if not self.state.project_data.shots:
            raise PrerequisiteError("Frames need a shot list; run the shots stage first")

    async def _execute(self) -> dict:
        state = self.state
        data = state.project_data
        completed = state.batch_progress.stage7_scenes_completed
        to_process = next_batch(data, completed, self.config.scenes_per_batch)
        if not to_process:
            raise StageSkipped("All scenes already have frames")

        shots = [s for s in data.shots if s.scene in to_process]
        frames: List[Frame] = []

        try:
            for i, shot in enumerate(shots):
                self.report_progress(i + 1, len(shots), f"Frame S{shot.scene}.{shot.shot_number}...")
                refs = select_frame_references(data, shot)
                text = await self.ask(StageTag.FRAMES, P.FRAMES_SYSTEM, frame_user_prompt(shot, refs))
                frames.append(parse_frame_response(text, shot, refs))
        except Exception:
            if frames:
                logger.warning(f"Keeping {len(frames)} frame(s) made before the failure")
                data.frames = merge_by_shot(data.frames, frames)
                state.update_project_data(data)
                state.expanded_sections["stage7"] = True
            raise

        data.frames = merge_by_shot(data.frames, frames)
        state.update_project_data(data)
        state.batch_progress.stage7_scenes_completed = completed + len(to_process)
        state.update_batch_progress(state.batch_progress)
        state.expanded_sections["stage7"] = True
        state.set_current_stage(PipelineStage.ITEMS.value)

        logger.info(f"Frames for scenes {to_process}: {len(frames)}")
        return {
            "frames": len(frames),
            "scenes": to_process,
            "scenesCompleted": state.batch_progress.stage7_scenes_completed,
            "totalScenes": len(data.scene_numbers()),
        }
