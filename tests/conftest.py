"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from storyreel.core.config import PipelineConfig
from storyreel.core.exceptions import LLMResponseError
from storyreel.llm import LLMResponse
from storyreel.project.models import (
    Background,
    Character,
    Item,
    ProjectData,
    ProjectMetadata,
    SceneInfo,
    ScenePlan,
    Shot,
    Style,
)
from storyreel.project.state import ProjectState
from storyreel.project.store import JsonProjectStore

Reply = Union[str, Exception, Callable[[Dict[str, Any]], str]]


class FakeLLM:
    """
    Stand-in for the Anthropic client.

    Replies come from a per-stage table first (a string, an exception, a
    callable taking the call, or a list consumed in order), then from a
    shared queue. Every call is recorded.
    """

    def __init__(self, by_stage: Optional[Dict[str, Any]] = None, queue: Optional[List[Reply]] = None):
        self.by_stage = dict(by_stage or {})
        self.queue = list(queue or [])
        self.calls: List[Dict[str, Any]] = []

    @property
    def stages(self) -> List[Optional[str]]:
        return [c["stage"] for c in self.calls]

    def _next_reply(self, call: Dict[str, Any]) -> Reply:
        stage = call["stage"]
        if stage in self.by_stage:
            reply = self.by_stage[stage]
            if isinstance(reply, list):
                if not reply:
                    raise LLMResponseError(f"No more replies for {stage}")
                return reply.pop(0)
            return reply
        if not self.queue:
            raise LLMResponseError(f"Unexpected call for {stage}")
        return self.queue.pop(0)

    async def call(
        self,
        *,
        system: Optional[str] = None,
        messages: List[Dict[str, str]],
        max_tokens: int = 4000,
        stage: Optional[str] = None,
        project_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        call = {
            "system": system,
            "messages": messages,
            "max_tokens": max_tokens,
            "stage": stage,
            "project_id": project_id,
            "model": model,
        }
        self.calls.append(call)

        reply = self._next_reply(call)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(call)
        return LLMResponse.from_text(reply)


def shot_block(shot: int, timing: float, description: str, framing: str = "Medium shot", vo: str = "") -> str:
    lines = [
        f"SHOT {shot}",
        f"FRAMING: {framing}",
        f"TIMING: {timing:g}",
        "BEAT: Moment",
        f"DESCRIPTION: {description}",
    ]
    if vo:
        lines.append(f"VO: {vo}")
    return "\n".join(lines)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def make_shot_block():
    return shot_block


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Default pipeline configuration with autosave effectively immediate."""
    config = PipelineConfig()
    config.autosave_delay = 0.01
    return config


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def llm_factory():
    """Build a FakeLLM with scripted replies."""
    return FakeLLM


@pytest.fixture
def store(temp_dir) -> JsonProjectStore:
    return JsonProjectStore(temp_dir / "projects")


@pytest.fixture
def sample_scene_plan() -> ScenePlan:
    return ScenePlan(
        scenes=[
            SceneInfo(scene=1, type="MEDIUM", location="Farmhouse Kitchen", duration=10,
                      summary="Buzz and Zip find the fruit bowl"),
            SceneInfo(scene=2, type="FAST", location="Garden Path", duration=5,
                      summary="Buzz, Zip and Rex flee the swatter"),
        ],
        total_duration=15,
        audio_type="narration",
        resolved_duration=15,
        resolved_audio_type="narration",
    )


@pytest.fixture
def sample_shots() -> List[Shot]:
    return [
        Shot(id="2.1.1", scene=1, shot_number=1, framing="Wide shot", timing=4.0, beat="Arrival",
             description="Buzz the fly drifts into the farmhouse kitchen."),
        Shot(id="2.1.2", scene=1, shot_number=2, framing="Close-up", timing=3.0, beat="Discovery",
             description="Zip lands on the golden pear beside Buzz."),
        Shot(id="2.2.1", scene=2, shot_number=1, framing="Tracking shot", timing=2.0, beat="Chase",
             description="All three race down the garden path."),
    ]


@pytest.fixture
def sample_project_data(sample_shots, sample_scene_plan) -> ProjectData:
    return ProjectData(
        script="Two flies look for breakfast.",
        shots=sample_shots,
        style=Style(id="3.1", style="Storybook Watercolor",
                    ai_generation_prompt="Art Style: Soft watercolor washes"),
        characters=[
            Character(id="4.1", name="Buzz [PROTAGONIST]", visual_prompt="Buzz | small green housefly"),
            Character(id="4.2", name="Zip [SECONDARY]", visual_prompt="Zip | tiny blue fruit fly"),
            Character(id="4.3", name="Rex [TERTIARY]", visual_prompt="Rex | grey barn cat"),
        ],
        backgrounds=[
            Background(id="5.1", name="Farmhouse Kitchen", visual_prompt="Farmhouse Kitchen | sunlit"),
            Background(id="5.2", name="Garden Path", visual_prompt="Garden Path | gravel"),
        ],
        items=[Item(id="6.1", name="Golden Pear", visual_prompt="Golden Pear | ripe pear")],
        metadata=ProjectMetadata(
            total_shots=3,
            total_scenes=2,
            estimated_runtime=9.0,
            target_duration=15,
            resolved_audio_type="narration",
            scene_plan=sample_scene_plan,
        ),
    )


@pytest.fixture
def state(sample_project_data) -> ProjectState:
    """Store-less state holding the sample project."""
    project_state = ProjectState()
    project_state.script_input = "Two flies look for breakfast."
    project_state.project_data = sample_project_data
    return project_state
