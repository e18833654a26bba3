"""
Storyreel Audio Summary

Copy-ready text of all narration and dialogue in a shot list.
"""

from typing import List, Sequence, Tuple

from storyreel.project.models import Shot
from storyreel.utils.text import clean_narration


def _scene_voiceovers(shots: Sequence[Shot]) -> List[Tuple[int, str]]:
    seen = set()
    result = []
    for shot in shots:
        if shot.scene_vo and shot.scene not in seen:
            seen.add(shot.scene)
            result.append((shot.scene, shot.scene_vo))
    return result


def has_narration(shots: Sequence[Shot]) -> bool:
    return any(s.vo or s.scene_vo for s in shots)


def has_dialogue(shots: Sequence[Shot]) -> bool:
    return any(s.dialogue for s in shots)


def format_all_narration(shots: Sequence[Shot]) -> str:
    """Scene-level voiceovers first, then per-shot VO lines."""
    output = ""
    for scene, text in _scene_voiceovers(shots):
        output += f"[Scene {scene} Narration]\n{clean_narration(text)}\n\n"
    for shot in shots:
        if shot.vo:
            output += f"[S{shot.scene}.{shot.shot_number}] {clean_narration(shot.vo)}\n"
    return output.strip()


def format_all_dialogue(shots: Sequence[Shot]) -> str:
    output = ""
    for shot in shots:
        if shot.dialogue:
            output += f"[S{shot.scene}.{shot.shot_number}] {shot.dialogue}\n"
    return output.strip()


def format_all_audio(shots: Sequence[Shot]) -> str:
    output = ""
    if has_narration(shots):
        output += "=== NARRATION / VOICE OVER ===\n\n"
        output += format_all_narration(shots)
        output += "\n\n"
    if has_dialogue(shots):
        output += "=== DIALOGUE ===\n\n"
        output += format_all_dialogue(shots)
    return output.strip()
