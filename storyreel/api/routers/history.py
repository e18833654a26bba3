"""Generation history router for the Storyreel API."""

from typing import Optional

from fastapi import APIRouter, Depends

from storyreel.api.deps import get_history
from storyreel.project.history import GenerationHistory

router = APIRouter()


@router.get("/")
async def list_history(
    page: int = 1,
    limit: int = 50,
    project_id: Optional[str] = None,
    history: GenerationHistory = Depends(get_history),
):
    """Newest-first page of recorded LLM calls."""
    return history.page(page=page, limit=limit, project_id=project_id)


@router.delete("/")
async def clear_history(history: GenerationHistory = Depends(get_history)):
    history.delete()
    return {"success": True}


@router.delete("/{entry_id}")
async def delete_history_entry(entry_id: str, history: GenerationHistory = Depends(get_history)):
    history.delete(entry_id)
    return {"success": True}
