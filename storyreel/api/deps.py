"""
Request dependencies for the Storyreel API.

Each collaborator is resolved through a FastAPI dependency so tests can
swap it with app.dependency_overrides.
"""

from fastapi import Depends

from storyreel.core.config import PipelineConfig, get_config
from storyreel.core.exceptions import PersistenceError
from storyreel.core.settings import get_settings
from storyreel.llm import AnthropicClient, LLMCaller
from storyreel.project.history import GenerationHistory
from storyreel.project.state import ProjectState
from storyreel.project.store import JsonProjectStore, ProjectStore


def get_store() -> ProjectStore:
    settings = get_settings()
    store = JsonProjectStore(settings.projects_dir)
    store.ensure_ready()
    return store


def get_history() -> GenerationHistory:
    return GenerationHistory(get_settings().history_file)


def get_pipeline_config() -> PipelineConfig:
    return get_config()


def get_llm_client(
    history: GenerationHistory = Depends(get_history),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> LLMCaller:
    """Anthropic client that records every stage-tagged call."""
    settings = get_settings()
    return AnthropicClient(
        api_key=settings.anthropic_api_key or None,
        base_url=settings.anthropic_base_url,
        version=settings.anthropic_version,
        model=config.model,
        timeout=settings.request_timeout,
        history=history,
    )


def open_project(project_id: str, store: ProjectStore, config: PipelineConfig) -> ProjectState:
    """Project state loaded from the store, autosaving with the configured delay."""
    state = ProjectState(store, autosave_delay=config.autosave_delay)
    state.load(project_id)
    return state


async def save_project(state: ProjectState) -> None:
    """Write the state now, dropping any pending autosave."""
    state.close()
    if not await state.save():
        raise PersistenceError(state.error or "Failed to save project")
