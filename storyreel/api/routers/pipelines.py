"""Pipelines router for the Storyreel API.

Stage runs, regeneration and story chat against a stored project. Every
endpoint loads the project, works on it in memory, then flushes the save.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from storyreel.api.deps import get_llm_client, get_pipeline_config, get_store, open_project
from storyreel.core.config import PipelineConfig
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.pipelines import (
    StoryPipeline,
    extract_final_story,
    send_chat_message,
    use_last_assistant_message,
)
from storyreel.project.state import ProjectState
from storyreel.project.store import ProjectStore

logger = get_logger("api.pipelines")

router = APIRouter()

# Rate limiter for the LLM-backed operations
limiter = Limiter(key_func=get_remote_address)

STAGE_RATE_LIMIT = "2/minute"


class StageResponse(BaseModel):
    result: Dict[str, Any]
    currentStage: int
    error: Optional[str] = None
    counts: Dict[str, int]
    batchProgress: Dict[str, int]


class RegenerateRequest(BaseModel):
    kind: str
    target_id: Optional[str] = None
    field: Optional[str] = None
    instructions: str = ""


class ChatRequest(BaseModel):
    message: str = ""
    action: str = "send"  # send | extract | use-last


def project_counts(state: ProjectState) -> Dict[str, int]:
    data = state.project_data
    return {
        "shots": len(data.shots),
        "scenes": len(data.scene_numbers()),
        "characters": len(data.characters),
        "backgrounds": len(data.backgrounds),
        "items": len(data.items),
        "frames": len(data.frames),
        "animations": len(data.animations),
    }


def to_json(value: Any) -> Any:
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


@router.post("/{project_id}/stages/{stage}", response_model=StageResponse)
@limiter.limit(STAGE_RATE_LIMIT)
async def run_stage(
    request: Request,
    project_id: str,
    stage: str,
    store: ProjectStore = Depends(get_store),
    llm: LLMCaller = Depends(get_llm_client),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Run one generation stage and save whatever it produced."""
    state = open_project(project_id, store, config)
    pipeline = StoryPipeline(state, llm, config)

    logger.info(f"Running stage '{stage}' for project {project_id}")
    try:
        result = await pipeline.run_stage(stage)
    finally:
        await state.flush()

    return StageResponse(
        result=result.to_dict(),
        currentStage=state.current_stage,
        error=state.error,
        counts=project_counts(state),
        batchProgress=state.batch_progress.to_dict(),
    )


@router.post("/{project_id}/regenerate")
@limiter.limit(STAGE_RATE_LIMIT)
async def regenerate(
    request: Request,
    project_id: str,
    body: RegenerateRequest,
    store: ProjectStore = Depends(get_store),
    llm: LLMCaller = Depends(get_llm_client),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Regenerate one record, one scene, or a whole stage."""
    state = open_project(project_id, store, config)
    regenerator = StoryPipeline(state, llm, config).regenerator

    try:
        updated = await regenerator.regenerate(
            body.kind,
            target_id=body.target_id,
            field=body.field,
            instructions=body.instructions,
        )
    finally:
        await state.flush()

    return {"kind": body.kind, "updated": to_json(updated), "counts": project_counts(state)}


@router.post("/{project_id}/chat")
async def chat(
    project_id: str,
    body: ChatRequest,
    store: ProjectStore = Depends(get_store),
    llm: LLMCaller = Depends(get_llm_client),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    """Story chat: send a message, extract the story, or adopt the last reply."""
    state = open_project(project_id, store, config)

    try:
        if body.action == "send":
            await send_chat_message(state, llm, body.message, config)
        elif body.action == "extract":
            await extract_final_story(state, llm, config)
        elif body.action == "use-last":
            use_last_assistant_message(state)
        else:
            raise HTTPException(status_code=400, detail=f"Unknown chat action '{body.action}'")
    finally:
        await state.flush()

    return {
        "chatMessages": [m.to_dict() for m in state.chat_messages],
        "scriptInput": state.script_input,
        "error": state.error,
    }
