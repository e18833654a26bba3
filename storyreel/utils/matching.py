"""
Storyreel Name Matching

Heuristics that decide which extracted characters, backgrounds and items a
shot mentions. Everything is substring and token overlap on names; there is
no tagging in the model output to rely on.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from storyreel.core.constants import MAX_BACKGROUNDS_PER_SHOT
from storyreel.project.models import (
    Background,
    Character,
    Frame,
    Item,
    ProjectData,
    Shot,
)
from storyreel.utils.text import get_clean_name

_NAME_SPLIT = re.compile(r"[\s\-_]+")
_LOCATION_SPLIT = re.compile(r"[\s\-_,()]+")
_GROUP_COUNT = re.compile(
    r"\b(all\s+(two|three|four|five|six|seven|\d+)"
    r"|the\s+(two|three|four|five|six|seven|\d+)\s+(of\s+them|characters?|creatures?|flies|birds?))\b",
    re.IGNORECASE,
)


@dataclass
class ShotReferences:
    """Entities linked to one shot or frame."""
    characters: List[Character] = field(default_factory=list)
    backgrounds: List[Background] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "characters": [c.to_dict() for c in self.characters],
            "backgrounds": [b.to_dict() for b in self.backgrounds],
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class ShotLink:
    """Reverse link from an entity to a shot that mentions it."""
    scene: int
    shot: int
    has_frame: bool = False
    has_animation: bool = False

    def to_dict(self) -> dict:
        return {
            "scene": self.scene,
            "shot": self.shot,
            "hasStage7": self.has_frame,
            "hasStage8": self.has_animation,
        }


def name_matches_in_text(name: Optional[str], text: Optional[str]) -> bool:
    """
    True when the name, or any 3+ character part of it, appears in the text.

    "Buzz the Fly" matches "buzz lands on the sill"; an empty name never
    matches.
    """
    clean_name = (name or "").lower().strip()
    if not clean_name:
        return False
    text_lower = (text or "").lower()

    if clean_name in text_lower:
        return True

    for part in _NAME_SPLIT.split(clean_name):
        if len(part) >= 3 and part in text_lower:
            return True

    return False


def background_matches_location(bg_name: str, location: Optional[str]) -> bool:
    """Match a background name against a scene location."""
    bg_lower = (bg_name or "").lower()
    loc_lower = (location or "").lower()

    if loc_lower and (loc_lower in bg_lower or bg_lower in loc_lower):
        return True

    bg_words = [w for w in _LOCATION_SPLIT.split(bg_lower) if len(w) > 2]
    loc_words = [w for w in _LOCATION_SPLIT.split(loc_lower) if len(w) > 2]
    return any(lw in w or w in lw for w in bg_words for lw in loc_words)


def has_explicit_group_count(description: Optional[str]) -> bool:
    """Detect phrases like "all three" or "the two flies"."""
    return bool(_GROUP_COUNT.search(description or ""))


def characters_in_text(characters: Sequence[Character], text: str) -> List[Character]:
    return [c for c in characters if name_matches_in_text(get_clean_name(c.name), text)]


def select_shot_characters(
    shot: Shot,
    characters: Sequence[Character],
    scene_context: str,
) -> List[Character]:
    """
    Characters named in the shot description.

    When nobody is named but the description counts a group ("all three"),
    fall back to every character named anywhere in the scene context.
    """
    named = characters_in_text(characters, shot.description)
    if named:
        return named
    if has_explicit_group_count(shot.description):
        return characters_in_text(characters, scene_context)
    return []


def select_shot_backgrounds(
    location: Optional[str],
    backgrounds: Sequence[Background],
) -> List[Background]:
    """At most two backgrounds, first matches in list order."""
    matched = [bg for bg in backgrounds if background_matches_location(bg.name, location)]
    return matched[:MAX_BACKGROUNDS_PER_SHOT]


def select_shot_items(description: str, items: Sequence[Item]) -> List[Item]:
    return [item for item in items if name_matches_in_text(item.name, description)]


def scene_context(project: ProjectData, scene: int) -> str:
    """All shot descriptions of a scene plus its planned summary."""
    scene_text = " ".join(s.description for s in project.shots if s.scene == scene)
    plan = project.scene_plan
    info = plan.find_scene(scene) if plan else None
    summary = info.summary if info else ""
    return f"{scene_text} {summary}"


def scene_location(project: ProjectData, scene: int) -> str:
    plan = project.scene_plan
    info = plan.find_scene(scene) if plan else None
    return info.location if info else ""


def references_for_shot(project: ProjectData, shot: Shot) -> ShotReferences:
    """Entities linked to a shot in the shot list view."""
    location = scene_location(project, shot.scene)

    backgrounds = [
        bg for bg in project.backgrounds
        if name_matches_in_text(bg.name, shot.description)
        or name_matches_in_text(bg.name, location)
        or name_matches_in_text(location, bg.name)
    ]

    return ShotReferences(
        characters=characters_in_text(project.characters, shot.description),
        backgrounds=backgrounds,
        items=select_shot_items(shot.description, project.items),
    )


def references_for_frame(project: ProjectData, frame: Frame) -> ShotReferences:
    """
    Entities linked to a frame.

    Frames that recorded character ids at generation time resolve those ids.
    Older frames fall back to matching against the shot and frame text.
    """
    if frame.character_ids:
        return ShotReferences(
            characters=[c for c in project.characters if c.id in frame.character_ids],
            backgrounds=[b for b in project.backgrounds if b.id in (frame.background_ids or [])],
            items=[i for i in project.items if i.id in (frame.item_ids or [])],
        )

    shot = project.find_shot(frame.scene, frame.shot_number)
    shot_text = f"{shot.description if shot else ''} {frame.first_frame} {frame.last_frame}"

    return ShotReferences(
        characters=characters_in_text(project.characters, shot_text),
        backgrounds=select_shot_backgrounds(scene_location(project, frame.scene), project.backgrounds),
        items=select_shot_items(shot_text, project.items),
    )


def _links(project: ProjectData, shots: Sequence[Shot]) -> List[ShotLink]:
    return [
        ShotLink(
            scene=s.scene,
            shot=s.shot_number,
            has_frame=project.has_frame(s.scene, s.shot_number),
            has_animation=project.has_animation(s.scene, s.shot_number),
        )
        for s in shots
    ]


def shots_for_character(project: ProjectData, character_name: str) -> List[ShotLink]:
    clean_name = get_clean_name(character_name)
    return _links(project, [s for s in project.shots if name_matches_in_text(clean_name, s.description)])


def shots_for_background(project: ProjectData, bg_name: str) -> List[ShotLink]:
    """Shots in scenes at a matching location, or whose description names the background."""
    plan = project.scene_plan
    scenes = plan.scenes if plan else []
    matching_scenes = {
        info.scene for info in scenes
        if name_matches_in_text(bg_name, info.location) or name_matches_in_text(info.location, bg_name)
    }
    return _links(project, [
        s for s in project.shots
        if s.scene in matching_scenes or name_matches_in_text(bg_name, s.description)
    ])


def shots_for_item(project: ProjectData, item_name: str) -> List[ShotLink]:
    return _links(project, [s for s in project.shots if name_matches_in_text(item_name, s.description)])
