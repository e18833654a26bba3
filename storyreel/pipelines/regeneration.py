"""
Storyreel Regeneration

Targeted re-runs: one shot, the style, one entity, one frame field, one
animation, one scene's frames or animations, or a whole stage. An optional
free-text instruction is appended to the request. The state is only touched
once the new content is in hand; a failed call leaves it as it was.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from storyreel.core.config import PipelineConfig, get_config
from storyreel.core.constants import StageTag
from storyreel.core.exceptions import PipelineStageError, PrerequisiteError, StoryreelError
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.pipelines.animation_generator import AnimationStage, animation_user_prompt, make_animation
from storyreel.pipelines.base_stage import BaseStage, StageResult, ask_llm
from storyreel.pipelines.entity_extractors import (
    BackgroundsStage,
    CharactersStage,
    ItemsStage,
    STYLE_NAME,
    STYLE_PROMPT,
)
from storyreel.pipelines.frame_generator import (
    FramesStage,
    frame_user_prompt,
    parse_frame_response,
    select_frame_references,
)
from storyreel.pipelines.prompts import StagePromptLibrary as P, fmt_number
from storyreel.pipelines.shot_generator import FIELD_LABELS, audio_line_instructions
from storyreel.project.models import Animation, Background, Character, Frame, Item, Shot, Style
from storyreel.project.state import ProjectState
from storyreel.utils.matching import characters_in_text
from storyreel.utils.text import (
    clean_asterisks,
    clean_narration,
    ensure_art_style_prefix,
    get_clean_name,
    get_role,
    strip_quotes,
)

logger = get_logger("pipelines.regeneration")

_REGEN_END = r"(?=(?:^[ \t*#]*(?i:" + FIELD_LABELS + r")|\b(?:" + FIELD_LABELS + r")):|\Z)"

REGEN_FRAMING = re.compile(r"(?i:FRAMING):\s*(.+)")
REGEN_TIMING = re.compile(r"(?i:TIMING):\s*(\d+(?:\.\d+)?|\.\d+)")
REGEN_BEAT = re.compile(r"(?i:BEAT):\s*(.+)")
REGEN_DESCRIPTION = re.compile(r"(?i:DESCRIPTION):\s*(.+?)" + _REGEN_END, re.DOTALL | re.MULTILINE)
REGEN_VO = re.compile(r"(?<!\w)(?i:VO):\s*(.+?)" + _REGEN_END, re.DOTALL | re.MULTILINE)
REGEN_DIALOGUE = re.compile(r"(?i:DIALOGUE):\s*(.+?)" + _REGEN_END, re.DOTALL | re.MULTILINE)

FRAME_FIELDS = ("firstFrame", "lastFrame")


def _group(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def apply_shot_regeneration(shot: Shot, text: str) -> Shot:
    """New field values from a regen reply; missing fields keep the old value."""
    timing_text = _group(REGEN_TIMING, text)
    timing = float(timing_text) if timing_text else 0.0
    return Shot(
        id=shot.id,
        scene=shot.scene,
        shot_number=shot.shot_number,
        framing=clean_asterisks(_group(REGEN_FRAMING, text) or shot.framing),
        timing=timing or shot.timing,
        beat=clean_asterisks(_group(REGEN_BEAT, text) or shot.beat),
        description=clean_asterisks(_group(REGEN_DESCRIPTION, text) or shot.description),
        dialogue=clean_asterisks(_group(REGEN_DIALOGUE, text) or shot.dialogue),
        vo=clean_narration(strip_quotes(_group(REGEN_VO, text)) or shot.vo),
        is_montage=shot.is_montage,
        scene_vo=shot.scene_vo,
    )


def _sorted_by_shot(records: Sequence) -> list:
    return sorted(records, key=lambda r: r.key)


class Regenerator:
    """
    Regeneration operations over one project state.

    Every operation raises PipelineStageError on failure and leaves the
    state as it was.
    """

    def __init__(
        self,
        state: ProjectState,
        llm: LLMCaller,
        config: Optional[PipelineConfig] = None,
    ):
        self.state = state
        self.llm = llm
        self.config = config or get_config()

    @property
    def data(self):
        return self.state.project_data

    async def _ask(self, tag: str, system: str, content: str) -> str:
        try:
            return await ask_llm(self.llm, self.config, tag, system, content)
        except StoryreelError as e:
            logger.error(f"Regeneration ({tag}) failed: {e.message}")
            raise PipelineStageError(tag, e.message) from e

    def _find(self, records: Sequence, record_id: str, tag: str, what: str):
        for record in records:
            if record.id == record_id:
                return record
        raise PipelineStageError(tag, f"No {what} with id '{record_id}'")

    def _commit(self) -> None:
        self.state.update_project_data(self.data)

    # =========================================================================
    # SINGLE RECORDS
    # =========================================================================

    async def regenerate_shot(self, shot_id: str, instructions: str = "") -> Shot:
        shot = self._find(self.data.shots, shot_id, StageTag.SHOT_REGEN, "shot")
        plan = self.data.scene_plan
        info = plan.find_scene(shot.scene) if plan else None
        metadata = self.data.metadata
        audio_type = (metadata.resolved_audio_type if metadata else "") or self.state.config_input.audio_type

        text = await self._ask(
            StageTag.SHOT_REGEN,
            P.render(
                P.SHOT_REGEN_SYSTEM,
                timing=fmt_number(shot.timing),
                audio_instructions=audio_line_instructions(audio_type),
            ),
            P.render(
                P.SHOT_REGEN_USER,
                scene=shot.scene,
                shot=shot.shot_number,
                scene_type=info.type if info and info.type else "MEDIUM",
                summary=info.summary if info and info.summary else "Part of the story",
                description=shot.description,
                instructions=P.instructions(instructions),
            ),
        )
        new_shot = apply_shot_regeneration(shot, text)
        self.data.shots = [new_shot if s.id == shot_id else s for s in self.data.shots]
        self._commit()
        return new_shot

    async def regenerate_style(self, instructions: str = "") -> Style:
        style_input = self.state.config_input.style_preference or self.config.default_style
        text = await self._ask(
            StageTag.STYLE_REGEN,
            P.STYLE_REGEN_SYSTEM,
            P.render(P.STYLE_REGEN_USER, style=style_input, instructions=P.instructions(instructions)),
        )
        name_match = STYLE_NAME.search(text)
        prompt_match = STYLE_PROMPT.search(text)

        style = self.data.style
        style.style = clean_asterisks(name_match.group(1).strip() if name_match else style_input)
        style.ai_generation_prompt = ensure_art_style_prefix(
            clean_asterisks(prompt_match.group(1).strip() if prompt_match else "")
        )
        self._commit()
        return style

    async def regenerate_character(self, character_id: str, instructions: str = "") -> Character:
        character = self._find(self.data.characters, character_id, StageTag.CHARACTER_REGEN, "character")
        role = get_role(character.name)
        text = await self._ask(
            StageTag.CHARACTER_REGEN,
            P.render(P.CHARACTER_REGEN_SYSTEM, role=f"[{role}]" if role else ""),
            P.render(
                P.CHARACTER_REGEN_USER,
                name=get_clean_name(character.name),
                role=f" ({role})" if role else "",
                instructions=P.instructions(instructions),
            ),
        )
        character.visual_prompt = clean_asterisks(text).replace('"', "")
        self._commit()
        return character

    async def regenerate_background(self, background_id: str, instructions: str = "") -> Background:
        background = self._find(self.data.backgrounds, background_id, StageTag.BACKGROUND_REGEN, "background")
        text = await self._ask(
            StageTag.BACKGROUND_REGEN,
            P.BACKGROUND_REGEN_SYSTEM,
            P.render(P.BACKGROUND_REGEN_USER, name=background.name, instructions=P.instructions(instructions)),
        )
        prompt = clean_asterisks(text)
        if "no people" not in prompt.lower():
            prompt += " Exclude: people, characters, figures."
        background.visual_prompt = prompt
        self._commit()
        return background

    async def regenerate_item(self, item_id: str, instructions: str = "") -> Item:
        item = self._find(self.data.items, item_id, StageTag.ITEM_REGEN, "item")
        text = await self._ask(
            StageTag.ITEM_REGEN,
            P.ITEM_REGEN_SYSTEM,
            P.render(P.ITEM_REGEN_USER, name=item.name, instructions=P.instructions(instructions)),
        )
        item.visual_prompt = clean_asterisks(text)
        self._commit()
        return item

    async def regenerate_frame(self, frame_id: str, field: str, instructions: str = "") -> Frame:
        if field not in FRAME_FIELDS:
            raise PipelineStageError(StageTag.FRAME_REGEN, f"Unknown frame field '{field}'")
        frame = self._find(self.data.frames, frame_id, StageTag.FRAME_REGEN, "frame")
        shot = self.data.find_shot(frame.scene, frame.shot_number)
        if shot is None:
            raise PipelineStageError(StageTag.FRAME_REGEN, f"No shot for frame '{frame_id}'")

        text = await self._ask(
            StageTag.FRAME_REGEN,
            P.FIRST_FRAME_REGEN_SYSTEM if field == "firstFrame" else P.LAST_FRAME_REGEN_SYSTEM,
            P.render(
                P.FRAME_REGEN_USER,
                framing=shot.framing,
                duration=fmt_number(frame.duration),
                description=shot.description,
                instructions=P.instructions(instructions),
            ),
        )
        if field == "firstFrame":
            frame.first_frame = clean_asterisks(text)
        else:
            frame.last_frame = clean_asterisks(text)
        self._commit()
        return frame

    async def regenerate_animation(self, animation_id: str, instructions: str = "") -> Animation:
        animation = self._find(self.data.animations, animation_id, StageTag.ANIMATION_REGEN, "animation")
        shot = self.data.find_shot(animation.scene, animation.shot_number)
        if shot is None:
            raise PipelineStageError(StageTag.ANIMATION_REGEN, f"No shot for animation '{animation_id}'")

        text = await self._ask(
            StageTag.ANIMATION_REGEN,
            P.ANIMATION_REGEN_SYSTEM,
            P.render(
                P.ANIMATION_REGEN_USER,
                duration=fmt_number(animation.duration),
                description=shot.description,
                instructions=P.instructions(instructions),
            ),
        )
        animation.animation_prompt = clean_asterisks(text)
        self._commit()
        return animation

    # =========================================================================
    # SCENES
    # =========================================================================

    def _scene_shots(self, scene: int, tag: str) -> List[Shot]:
        shots = [s for s in self.data.shots if s.scene == scene]
        if not shots:
            raise PipelineStageError(tag, f"Scene {scene} has no shots")
        return shots

    async def regenerate_scene_frames(self, scene: int) -> List[Frame]:
        """Replace every frame of one scene."""
        frames: List[Frame] = []
        for shot in self._scene_shots(scene, StageTag.FRAMES_REGEN):
            refs = select_frame_references(self.data, shot)
            text = await self._ask(
                StageTag.FRAMES_REGEN,
                P.SCENE_FRAMES_REGEN_SYSTEM,
                frame_user_prompt(
                    shot, refs,
                    character_template=P.REGEN_CHARACTERS_SECTION,
                    items_template=P.REGEN_ITEMS_SECTION,
                ),
            )
            frames.append(parse_frame_response(text, shot, refs))

        self.data.frames = _sorted_by_shot([f for f in self.data.frames if f.scene != scene] + frames)
        self._commit()
        logger.info(f"Regenerated {len(frames)} frames for scene {scene}")
        return frames

    async def regenerate_scene_animations(self, scene: int) -> List[Animation]:
        """Replace every animation prompt of one scene."""
        animations: List[Animation] = []
        for shot in self._scene_shots(scene, StageTag.ANIMATION_REGEN):
            characters = characters_in_text(self.data.characters, shot.description)
            text = await self._ask(
                StageTag.ANIMATION_REGEN,
                P.SCENE_ANIMATIONS_REGEN_SYSTEM,
                animation_user_prompt(shot, characters, P.REGEN_ANIMATION_CHARACTERS_SECTION),
            )
            animations.append(make_animation(shot, text))

        self.data.animations = _sorted_by_shot(
            [a for a in self.data.animations if a.scene != scene] + animations
        )
        self._commit()
        logger.info(f"Regenerated {len(animations)} animation prompts for scene {scene}")
        return animations

    # =========================================================================
    # WHOLE STAGES
    # =========================================================================

    def _restore(self, restore: Dict[str, Any]) -> None:
        for attr, value in restore.items():
            obj, name = attr.split(".")
            setattr(getattr(self.state, obj), name, value)
        self._commit()

    async def _rerun(self, stage: BaseStage, restore: Dict[str, Any]) -> StageResult:
        """Run a stage; on failure put back the saved fields and raise."""
        try:
            result = await stage.run()
        except PrerequisiteError:
            self._restore(restore)
            raise
        if not result.success:
            self._restore(restore)
            raise PipelineStageError(stage.name, result.error or "Unknown error")
        return result

    async def regenerate_all_characters(self) -> StageResult:
        stage = CharactersStage(self.state, self.llm, self.config)
        return await self._rerun(stage, {"project_data.characters": list(self.data.characters)})

    async def regenerate_all_backgrounds(self) -> StageResult:
        stage = BackgroundsStage(self.state, self.llm, self.config)
        return await self._rerun(stage, {"project_data.backgrounds": list(self.data.backgrounds)})

    async def regenerate_all_items(self) -> StageResult:
        restore = {"project_data.items": list(self.data.items)}
        self.data.items = []
        return await self._rerun(ItemsStage(self.state, self.llm, self.config), restore)

    async def regenerate_all_frames(self) -> StageResult:
        """Clear frames and the batch counter, then run the first batch."""
        restore = {
            "project_data.frames": list(self.data.frames),
            "batch_progress.stage7_scenes_completed": self.state.batch_progress.stage7_scenes_completed,
        }
        self.data.frames = []
        self.state.batch_progress.stage7_scenes_completed = 0
        self.state.update_batch_progress(self.state.batch_progress)
        return await self._rerun(FramesStage(self.state, self.llm, self.config), restore)

    async def regenerate_all_animations(self) -> StageResult:
        """Clear animation prompts and the batch counter, then run the first batch."""
        restore = {
            "project_data.animations": list(self.data.animations),
            "batch_progress.stage8_scenes_completed": self.state.batch_progress.stage8_scenes_completed,
        }
        self.data.animations = []
        self.state.batch_progress.stage8_scenes_completed = 0
        self.state.update_batch_progress(self.state.batch_progress)
        return await self._rerun(AnimationStage(self.state, self.llm, self.config), restore)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def regenerate(
        self,
        kind: str,
        target_id: Optional[str] = None,
        field: Optional[str] = None,
        instructions: str = "",
    ) -> Any:
        """Run one regeneration by kind name, as exposed over HTTP."""
        single = {
            "shot": self.regenerate_shot,
            "character": self.regenerate_character,
            "background": self.regenerate_background,
            "item": self.regenerate_item,
            "animation": self.regenerate_animation,
        }
        whole = {
            "all-characters": self.regenerate_all_characters,
            "all-backgrounds": self.regenerate_all_backgrounds,
            "all-items": self.regenerate_all_items,
            "all-frames": self.regenerate_all_frames,
            "all-animations": self.regenerate_all_animations,
        }

        if kind == "style":
            return await self.regenerate_style(instructions)
        if kind == "frame":
            return await self.regenerate_frame(target_id or "", field or "", instructions)
        if kind in single:
            return await single[kind](target_id or "", instructions)
        if kind in ("scene-frames", "scene-animations"):
            try:
                scene = int(target_id or "")
            except ValueError:
                raise PipelineStageError(kind, f"Invalid scene number '{target_id}'") from None
            if kind == "scene-frames":
                return await self.regenerate_scene_frames(scene)
            return await self.regenerate_scene_animations(scene)
        if kind in whole:
            return await whole[kind]()
        raise PipelineStageError(kind, f"Unknown regeneration kind '{kind}'")
