"""
Tests for the Storyreel API

Routers exercised through TestClient with the store, LLM client and history
swapped for temp-dir and scripted versions.
"""

import pytest
from fastapi.testclient import TestClient

from storyreel.api import deps
from storyreel.api.main import app, status_for
from storyreel.api.routers import pipelines
from storyreel.core.config import PipelineConfig
from storyreel.core.exceptions import (
    LLMRequestError,
    PipelineStageError,
    PrerequisiteError,
    ProjectNotFoundError,
    StoryreelError,
)
from storyreel.project.history import GenerationHistory


@pytest.fixture
def history(temp_dir):
    return GenerationHistory(temp_dir / "history.jsonl")


@pytest.fixture
def api_llm(llm_factory):
    return llm_factory(by_stage={
        "style": "STYLE: Ink Wash\nPROMPT: bold brush strokes",
        "item-regen": "Golden Pear | freshly polished pear",
        "story-chat": "How about a cat?",
    })


@pytest.fixture
def client(store, history, api_llm):
    config = PipelineConfig()
    config.autosave_delay = 0.01

    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_history] = lambda: history
    app.dependency_overrides[deps.get_pipeline_config] = lambda: config
    app.dependency_overrides[deps.get_llm_client] = lambda: api_llm
    pipelines.limiter.enabled = False

    yield TestClient(app)

    app.dependency_overrides.clear()
    pipelines.limiter.enabled = True


@pytest.fixture
def project_id(client, sample_project_data):
    response = client.post("/api/projects/", json={
        "name": "Fly Breakfast",
        "scriptInput": "Two flies look for breakfast.",
        "projectData": sample_project_data.to_dict(),
    })
    assert response.status_code == 200
    return response.json()["id"]


class TestStatusMapping:

    @pytest.mark.parametrize("exc,expected", [
        (ProjectNotFoundError("abc"), 404),
        (PrerequisiteError("no shots"), 409),
        (LLMRequestError("limited", 429), 429),
        (LLMRequestError("unreachable"), 502),
        (PipelineStageError("style", "bad"), 502),
        (StoryreelError("other"), 500),
    ])
    def test_status_for(self, exc, expected):
        assert status_for(exc) == expected


class TestProjects:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}

    def test_create_and_list(self, client, project_id):
        projects = client.get("/api/projects/").json()

        assert len(projects) == 1
        assert projects[0]["id"] == project_id
        assert projects[0]["name"] == "Fly Breakfast"
        assert projects[0]["shotCount"] == 3

    def test_get_missing_project(self, client):
        response = client.get("/api/projects/nope")

        assert response.status_code == 404
        assert "detail" in response.json()

    def test_partial_update(self, client, project_id):
        response = client.put(f"/api/projects/{project_id}", json={"name": "Renamed"})

        assert response.status_code == 200
        record = client.get(f"/api/projects/{project_id}").json()
        assert record["name"] == "Renamed"
        assert record["scriptInput"] == "Two flies look for breakfast."

    def test_delete(self, client, project_id):
        assert client.delete(f"/api/projects/{project_id}").json() == {"success": True}
        assert client.get(f"/api/projects/{project_id}").status_code == 404

    def test_export_and_import(self, client, project_id):
        response = client.get(f"/api/projects/{project_id}/export")

        assert response.status_code == 200
        assert 'filename="Fly_Breakfast_' in response.headers["content-disposition"]
        snapshot = response.json()
        assert snapshot["version"] == "1.0"

        imported = client.post("/api/projects/import", json=snapshot).json()

        assert imported["id"] != project_id
        assert imported["name"] == "Fly Breakfast"
        assert len(client.get("/api/projects/").json()) == 2

    def test_import_rejects_bad_snapshot(self, client):
        response = client.post("/api/projects/import", json={"name": "Empty"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid project file format"

    def test_references(self, client, project_id):
        refs = client.get(f"/api/projects/{project_id}/references").json()

        names = [c["name"] for c in refs["shots"]["2.1.2"]["characters"]]
        assert names == ["Buzz [PROTAGONIST]", "Zip [SECONDARY]"]

    def test_shot_edit(self, client, project_id):
        response = client.put(
            f"/api/projects/{project_id}/shots/2.1.1",
            json={"field": "description", "value": "Buzz circles the lamp."},
        )

        assert response.status_code == 200
        assert response.json()["shots"][0]["description"] == "Buzz circles the lamp."

    def test_shot_edit_rejects_field(self, client, project_id):
        response = client.put(f"/api/projects/{project_id}/shots/2.1.1", json={"field": "id", "value": "x"})

        assert response.status_code == 400

    def test_toggle_prompt(self, client, project_id):
        first = client.post(f"/api/projects/{project_id}/prompts/4.1/toggle").json()
        second = client.post(f"/api/projects/{project_id}/prompts/4.1/toggle").json()

        assert first == {"id": "4.1", "completed": True}
        assert second["completed"] is False


class TestPipelines:

    def test_run_stage(self, client, project_id, api_llm):
        response = client.post(f"/api/pipelines/{project_id}/stages/style")

        assert response.status_code == 200
        body = response.json()
        assert body["result"]["status"] == "completed"
        assert body["counts"]["shots"] == 3
        assert api_llm.stages == ["style"]
        record = client.get(f"/api/projects/{project_id}").json()
        assert record["projectData"]["stage3"]["style"] == "Ink Wash"

    def test_missing_prerequisite_is_conflict(self, client):
        empty = client.post("/api/projects/", json={"name": "Empty"}).json()

        response = client.post(f"/api/pipelines/{empty['id']}/stages/frames")

        assert response.status_code == 409

    def test_unknown_stage_is_conflict(self, client, project_id):
        assert client.post(f"/api/pipelines/{project_id}/stages/music").status_code == 409

    def test_regenerate_item(self, client, project_id):
        response = client.post(
            f"/api/pipelines/{project_id}/regenerate",
            json={"kind": "item", "target_id": "6.1"},
        )

        assert response.status_code == 200
        assert response.json()["updated"]["visualPrompt"] == "Golden Pear | freshly polished pear"

    def test_regenerate_unknown_id(self, client, project_id):
        response = client.post(
            f"/api/pipelines/{project_id}/regenerate",
            json={"kind": "character", "target_id": "4.9"},
        )

        assert response.status_code == 502
        assert response.json()["detail"] == "No character with id '4.9'"

    def test_chat_send(self, client, project_id):
        response = client.post(f"/api/pipelines/{project_id}/chat", json={"message": "Ideas?"})

        messages = response.json()["chatMessages"]
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[1]["content"] == "How about a cat?"

    def test_chat_unknown_action(self, client, project_id):
        response = client.post(f"/api/pipelines/{project_id}/chat", json={"action": "shout"})

        assert response.status_code == 400


class TestHistory:

    def test_page_and_delete(self, client, history):
        entry = history.record({"stage": "style", "prompt": "p", "response": "r", "tokens_used": 12})

        page = client.get("/api/history/").json()

        assert page["pagination"]["total"] == 1
        assert page["stats"]["totalTokensUsed"] == 12

        client.delete(f"/api/history/{entry['id']}")
        assert client.get("/api/history/").json()["pagination"]["total"] == 0
