"""
Storyreel Project Snapshots

Export/import of the full in-memory project as one JSON document.
"""

import json
import re
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from storyreel.core.constants import SNAPSHOT_VERSION, PipelineStage
from storyreel.core.exceptions import SnapshotFormatError
from storyreel.project.models import ProjectData

if TYPE_CHECKING:
    from storyreel.project.state import ProjectState


def determine_current_stage(data: ProjectData) -> int:
    """Stage index implied by which stage lists hold data."""
    if data.animations:
        return PipelineStage.ANIMATION.value
    if data.frames:
        return PipelineStage.ITEMS.value
    if data.items or data.backgrounds:
        return PipelineStage.ITEMS.value
    if data.characters:
        return PipelineStage.CHARACTERS.value
    if data.style.style:
        return PipelineStage.STYLE.value
    if data.shots:
        return PipelineStage.SHOTS.value
    return PipelineStage.CONCEPT.value


def expanded_sections(data: ProjectData) -> Dict[str, bool]:
    """Stage sections that have content to show."""
    sections = {}
    if data.shots:
        sections["stage2"] = True
    if data.style.style:
        sections["stage3"] = True
    if data.characters:
        sections["stage4"] = True
    if data.backgrounds:
        sections["stage5"] = True
    if data.items:
        sections["stage6"] = True
    if data.frames:
        sections["stage7"] = True
    if data.animations:
        sections["stage8"] = True
    return sections


def default_project_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Project {today:%Y-%m-%d}"


def snapshot_filename(name: str, today: Optional[date] = None) -> str:
    """Download filename: non-alphanumerics become underscores, plus the date."""
    today = today or datetime.now(timezone.utc).date()
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', name)}_{today.isoformat()}.json"


def export_snapshot(state: "ProjectState") -> Dict[str, Any]:
    """Snapshot of everything the user would need to restore the project."""
    name = state.name.strip() or default_project_name()
    return {
        "name": name,
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "version": SNAPSHOT_VERSION,
        "scriptInput": state.script_input,
        "configInput": state.config_input.to_dict(),
        "projectData": state.project_data.to_dict(),
        "batchProgress": state.batch_progress.to_dict(),
        "chatMessages": [m.to_dict() for m in state.chat_messages],
        "completedPrompts": dict(state.completed_prompts),
    }


def import_snapshot(data: Dict[str, Any], state: "ProjectState") -> None:
    """
    Apply a snapshot to the state.

    Only keys present in the snapshot are applied, the same way a stored
    project record is loaded. A blank script or name is skipped.
    The current stage is re-derived.

    Raises:
        SnapshotFormatError: The document has no projectData
    """
    if not isinstance(data, dict) or not data.get("projectData"):
        raise SnapshotFormatError("Invalid project file format")

    state.apply_record(data, partial=True)


def dumps_snapshot(snapshot: Dict[str, Any]) -> str:
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def loads_snapshot(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotFormatError(f"Failed to import: {e}")
    if not isinstance(data, dict):
        raise SnapshotFormatError("Invalid project file format")
    return data
