"""Projects router for the Storyreel API."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storyreel.api.deps import get_pipeline_config, get_store, open_project, save_project
from storyreel.core.config import PipelineConfig
from storyreel.core.logging_config import get_logger
from storyreel.project.snapshot import export_snapshot, import_snapshot, snapshot_filename
from storyreel.project.state import ProjectState
from storyreel.project.store import ProjectStore
from storyreel.project.summary import format_all_audio, format_all_dialogue, format_all_narration
from storyreel.utils.matching import references_for_frame, references_for_shot

logger = get_logger("api.projects")

router = APIRouter()


class ProjectWrite(BaseModel):
    """Stored project fields; omitted fields are left alone."""
    name: Optional[str] = None
    scriptInput: Optional[str] = None
    configInput: Optional[Dict[str, Any]] = None
    projectData: Optional[Dict[str, Any]] = None
    batchProgress: Optional[Dict[str, Any]] = None
    chatMessages: Optional[List[Dict[str, Any]]] = None
    completedPrompts: Optional[Dict[str, bool]] = None


class ProjectSummary(BaseModel):
    id: str
    name: str
    isPublic: bool = False
    shareId: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    shotCount: int = 0
    sceneCount: int = 0
    runtime: float = 0


class ShotEdit(BaseModel):
    field: str
    value: Any


class PromptEdit(BaseModel):
    kind: str
    target_id: Optional[str] = None
    field: Optional[str] = None
    value: str


@router.get("/", response_model=List[ProjectSummary])
async def list_projects(store: ProjectStore = Depends(get_store)):
    """List stored projects, most recently updated first."""
    return store.list()


@router.post("/")
async def create_project(body: ProjectWrite, store: ProjectStore = Depends(get_store)):
    """Create a project from whatever state the client already holds."""
    state = body.model_dump(exclude_none=True)
    return store.create(state.pop("name", ""), state)


@router.post("/import")
async def import_project(
    snapshot: Dict[str, Any],
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Import an exported snapshot as a new project."""
    state = ProjectState(store, autosave_delay=config.autosave_delay)
    import_snapshot(snapshot, state)
    state.close()
    record = await state.create(state.name)
    if record is None:
        raise HTTPException(status_code=500, detail=state.error or "Failed to import project")
    logger.info(f"Imported snapshot as project {record['id']}")
    return record


@router.get("/{project_id}")
async def get_project(project_id: str, store: ProjectStore = Depends(get_store)):
    return store.get(project_id)


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    body: ProjectWrite,
    store: ProjectStore = Depends(get_store),
):
    """Partial update; the last write wins."""
    return store.update(project_id, body.model_dump(exclude_none=True))


@router.delete("/{project_id}")
async def delete_project(project_id: str, store: ProjectStore = Depends(get_store)):
    store.delete(project_id)
    return {"success": True}


@router.get("/{project_id}/export")
async def export_project(
    project_id: str,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Snapshot download of the full project."""
    state = open_project(project_id, store, config)
    snapshot = export_snapshot(state)
    filename = snapshot_filename(snapshot["name"])
    return JSONResponse(
        content=snapshot,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{project_id}/audio")
async def project_audio(
    project_id: str,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Copy-ready narration and dialogue text."""
    shots = open_project(project_id, store, config).project_data.shots
    return {
        "narration": format_all_narration(shots),
        "dialogue": format_all_dialogue(shots),
        "all": format_all_audio(shots),
    }


@router.get("/{project_id}/references")
async def project_references(
    project_id: str,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Entities linked to each shot and each frame."""
    data = open_project(project_id, store, config).project_data
    return {
        "shots": {s.id: references_for_shot(data, s).to_dict() for s in data.shots},
        "frames": {f.id: references_for_frame(data, f).to_dict() for f in data.frames},
    }


@router.put("/{project_id}/shots/{shot_id}")
async def edit_shot(
    project_id: str,
    shot_id: str,
    body: ShotEdit,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    state = open_project(project_id, store, config)
    try:
        state.edit_shot_field(shot_id, body.field, body.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await save_project(state)
    return {"shots": [s.to_dict() for s in state.project_data.shots]}


@router.put("/{project_id}/prompts")
async def edit_prompt(
    project_id: str,
    body: PromptEdit,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Manual edit of a generated prompt."""
    state = open_project(project_id, store, config)
    try:
        state.edit_prompt(body.kind, body.target_id or "", body.value, body.field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await save_project(state)
    return {"success": True}


@router.post("/{project_id}/prompts/{prompt_id}/toggle")
async def toggle_prompt(
    project_id: str,
    prompt_id: str,
    store: ProjectStore = Depends(get_store),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Flip a prompt's completed flag."""
    state = open_project(project_id, store, config)
    completed = state.toggle_complete(prompt_id)
    await save_project(state)
    return {"id": prompt_id, "completed": completed}
