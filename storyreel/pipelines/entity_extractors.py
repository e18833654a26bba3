"""
Storyreel Entity Extractors

Style, character, background and item stages. Each makes a single call and
parses a "NAME | description" listing; every stage replaces its list whole.
"""

import re
from typing import List, Optional

from storyreel.core.constants import (
    EXCLUDE_BACKGROUND,
    EXCLUDE_GENERIC,
    MIN_ENTITY_LINE_LENGTH,
    NO_ITEMS_SENTINEL,
    PipelineStage,
    StageTag,
)
from storyreel.core.exceptions import PrerequisiteError
from storyreel.core.logging_config import get_logger
from storyreel.pipelines.base_stage import BaseStage, parse_pipe_lines
from storyreel.pipelines.prompts import StagePromptLibrary as P
from storyreel.project.models import (
    Background,
    Character,
    Item,
    ProjectData,
    ScenePlan,
    Shot,
    Style,
)
from storyreel.utils.text import clean_asterisks, ensure_art_style_prefix, get_clean_name

logger = get_logger("pipelines.entities")

STYLE_NAME = re.compile(r"STYLE:\s*(.+)", re.IGNORECASE)
STYLE_PROMPT = re.compile(r"PROMPT:\s*([\s\S]+?)$", re.IGNORECASE)

_EDGE_ASTERISKS = re.compile(r"^\*+|\*+$")
_LIST_NUMBERING = re.compile(r"^[\d.\-\s]+")


# =============================================================================
# CONTEXT
# =============================================================================

def character_context(shots: List[Shot]) -> str:
    return "\n".join(f"[S{s.scene}.{s.shot_number}]: {s.description}" for s in shots)


def framed_shot_context(shots: List[Shot]) -> str:
    return "\n".join(f"[S{s.scene}.{s.shot_number}] {s.framing}: {s.description}" for s in shots)


def location_context(plan: Optional[ScenePlan]) -> str:
    if not plan:
        return ""
    return "\n".join(f"Scene {s.scene}: {s.location}" for s in plan.scenes)


# =============================================================================
# PARSING
# =============================================================================

def parse_style_response(text: str, style_input: str) -> Style:
    """STYLE / PROMPT reply into the stage 3 record."""
    name_match = STYLE_NAME.search(text)
    prompt_match = STYLE_PROMPT.search(text)

    style_name = clean_asterisks(name_match.group(1).strip() if name_match else style_input)
    prompt = clean_asterisks(prompt_match.group(1).strip() if prompt_match else "")
    if not prompt:
        prompt = P.render(P.STYLE_FALLBACK, style=style_name)

    return Style(id="3.1", style=style_name, ai_generation_prompt=ensure_art_style_prefix(prompt))


def character_name_from_line(line: str, index: int) -> str:
    """Text before the first "|", without emphasis or list numbering."""
    name = line.split("|")[0].strip()
    name = _EDGE_ASTERISKS.sub("", name)
    name = _LIST_NUMBERING.sub("", name).strip()
    if len(name) < 2:
        name = f"Character {index + 1}"
    return clean_asterisks(name)


def parse_character_lines(text: str) -> List[Character]:
    return [
        Character(
            id=f"4.{i + 1}",
            name=character_name_from_line(line, i),
            visual_prompt=clean_asterisks(line).replace('"', ""),
        )
        for i, line in enumerate(parse_pipe_lines(text, MIN_ENTITY_LINE_LENGTH))
    ]


def with_exclusion(prompt: str, exclusion: str) -> str:
    """Append the exclusion clause unless the prompt already has one."""
    if "exclude:" in prompt.lower():
        return prompt
    return f"{prompt} {exclusion}."


def _entity_name(line: str, fallback: str) -> str:
    return clean_asterisks(line.split("|")[0].strip() or fallback)


def parse_background_lines(text: str) -> List[Background]:
    return [
        Background(
            id=f"5.{i + 1}",
            name=_entity_name(line, f"Background {i + 1}"),
            visual_prompt=with_exclusion(clean_asterisks(line), EXCLUDE_BACKGROUND),
        )
        for i, line in enumerate(parse_pipe_lines(text, MIN_ENTITY_LINE_LENGTH))
    ]


def fallback_backgrounds(plan: Optional[ScenePlan]) -> List[Background]:
    """One empty-environment background per distinct scene location."""
    locations: List[str] = []
    for scene in plan.scenes if plan else []:
        if scene.location and scene.location not in locations:
            locations.append(scene.location)
    return [
        Background(
            id=f"5.{i + 1}",
            name=clean_asterisks(location),
            visual_prompt=P.render(P.BACKGROUND_FALLBACK, location=clean_asterisks(location)),
        )
        for i, location in enumerate(locations)
    ]


def parse_item_lines(text: str) -> List[Item]:
    """Item listing; the no-items sentinel anywhere means an empty list."""
    if NO_ITEMS_SENTINEL in text:
        return []
    return [
        Item(
            id=f"6.{i + 1}",
            name=_entity_name(line, f"Item {i + 1}"),
            visual_prompt=with_exclusion(clean_asterisks(line), EXCLUDE_GENERIC),
        )
        for i, line in enumerate(parse_pipe_lines(text, MIN_ENTITY_LINE_LENGTH))
    ]


def character_names(data: ProjectData) -> str:
    return ", ".join(get_clean_name(c.name) for c in data.characters) or "None"


# =============================================================================
# STAGES
# =============================================================================

class _ShotBasedStage(BaseStage):
    """Stages that read the shot list."""

    def check_prerequisites(self) -> None:
        if not self.state.project_data.shots:
            raise PrerequisiteError(f"{self.label} needs a shot list; run the shots stage first")

    def _finish(self, section: str, stage: PipelineStage) -> None:
        self.state.update_project_data(self.state.project_data)
        self.state.expanded_sections[section] = True
        self.state.set_current_stage(stage.value)


class StyleStage(BaseStage):
    """Art style guide from the style preference."""

    name = "style"

    def check_prerequisites(self) -> None:
        pass

    async def _execute(self) -> dict:
        style_input = self.state.config_input.style_preference or self.config.default_style
        self.report_progress(0, 0, "Generating art style...")

        text = await self.ask(
            StageTag.STYLE,
            P.STYLE_SYSTEM,
            P.render(P.STYLE_USER, style=style_input),
        )
        style = parse_style_response(text, style_input)

        self.state.project_data.style = style
        self.state.update_project_data(self.state.project_data)
        self.state.expanded_sections["stage3"] = True
        self.state.set_current_stage(PipelineStage.STYLE.value)
        return {"style": style.style}


class CharactersStage(_ShotBasedStage):
    """Recurring characters named in the shot descriptions."""

    name = "characters"

    async def _execute(self) -> dict:
        data = self.state.project_data
        self.report_progress(0, 0, "Extracting characters...")

        text = await self.ask(
            StageTag.CHARACTERS,
            P.CHARACTERS_SYSTEM,
            P.render(P.CHARACTERS_USER, shots=character_context(data.shots)),
        )
        data.characters = parse_character_lines(text)
        logger.info(f"Parsed {len(data.characters)} characters")

        self._finish("stage4", PipelineStage.CHARACTERS)
        return {"characters": len(data.characters)}


class BackgroundsStage(_ShotBasedStage):
    """Empty-scene backgrounds for every location."""

    name = "backgrounds"

    async def _execute(self) -> dict:
        data = self.state.project_data
        self.report_progress(0, 0, "Extracting backgrounds...")

        text = await self.ask(
            StageTag.BACKGROUNDS,
            P.BACKGROUNDS_SYSTEM,
            P.render(
                P.BACKGROUNDS_USER,
                locations=location_context(data.scene_plan),
                shots=framed_shot_context(data.shots),
            ),
        )
        backgrounds = parse_background_lines(text)
        fallback = not backgrounds
        if fallback:
            backgrounds = fallback_backgrounds(data.scene_plan)
            logger.warning(f"No background lines parsed; using {len(backgrounds)} scene locations")
        data.backgrounds = backgrounds

        self._finish("stage5", PipelineStage.BACKGROUNDS)
        return {"backgrounds": len(backgrounds), "fallback": fallback}


class ItemsStage(_ShotBasedStage):
    """Props and objects, excluding the known characters."""

    name = "items"

    async def _execute(self) -> dict:
        data = self.state.project_data
        self.report_progress(0, 0, "Extracting items...")

        text = await self.ask(
            StageTag.ITEMS,
            P.render(P.ITEMS_SYSTEM, characters=character_names(data)),
            P.render(P.ITEMS_USER, shots=framed_shot_context(data.shots)),
        )
        data.items = parse_item_lines(text)
        logger.info(f"Parsed {len(data.items)} items")

        self._finish("stage6", PipelineStage.ITEMS)
        return {"items": len(data.items)}
