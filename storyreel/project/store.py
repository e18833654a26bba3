"""
Storyreel Project Store

File-backed project persistence: one JSON document per project.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from storyreel.core.exceptions import PersistenceError, ProjectNotFoundError
from storyreel.core.logging_config import get_logger
from storyreel.utils.file_utils import ensure_directory, read_json, write_json_atomic

logger = get_logger("project.store")

# Keys a client may write; everything else on the record is managed here
STATE_FIELDS = (
    "name",
    "scriptInput",
    "configInput",
    "projectData",
    "batchProgress",
    "chatMessages",
    "completedPrompts",
)


class ProjectStore(Protocol):
    """Persistence contract used by ProjectState and the API."""

    def create(self, name: str, state: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update(self, project_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def get(self, project_id: str) -> Dict[str, Any]:
        ...

    def list(self) -> List[Dict[str, Any]]:
        ...

    def delete(self, project_id: str) -> None:
        ...


def summarize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """List-view summary of a stored project."""
    data = record.get("projectData") or {}
    metadata = data.get("metadata") or {}
    return {
        "id": record["id"],
        "name": record.get("name", ""),
        "isPublic": record.get("isPublic", False),
        "shareId": record.get("shareId"),
        "createdAt": record.get("createdAt"),
        "updatedAt": record.get("updatedAt"),
        "shotCount": len(data.get("stage2") or []),
        "sceneCount": metadata.get("totalScenes") or 0,
        "runtime": metadata.get("estimatedRuntime") or 0,
    }


class JsonProjectStore:
    """
    Stores each project as <projects_dir>/<id>.json.

    Field contents are opaque JSON; the last write wins.
    """

    def __init__(self, projects_dir: Path, user_id: Optional[str] = None):
        self.projects_dir = Path(projects_dir)
        self.user_id = user_id

    def _path(self, project_id: str) -> Path:
        # ids are generated here; refuse anything that could escape the directory
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise ProjectNotFoundError(project_id)
        return self.projects_dir / f"{project_id}.json"

    def create(self, name: str, state: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now().isoformat()
        record: Dict[str, Any] = {
            "id": uuid.uuid4().hex,
            "userId": self.user_id,
            "isPublic": False,
            "shareId": None,
            "createdAt": now,
            "updatedAt": now,
        }
        for key in STATE_FIELDS:
            if key in state:
                record[key] = state[key]
        record["name"] = name or f"Project {datetime.now():%Y-%m-%d}"

        write_json_atomic(self._path(record["id"]), record)
        logger.info(f"Created project {record['id']} ({record['name']})")
        return record

    def update(self, project_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        record = self.get(project_id)
        for key in STATE_FIELDS:
            if key in partial and partial[key] is not None:
                record[key] = partial[key]
        record["updatedAt"] = datetime.now().isoformat()

        write_json_atomic(self._path(project_id), record)
        logger.debug(f"Updated project {project_id}")
        return record

    def get(self, project_id: str) -> Dict[str, Any]:
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        return read_json(path)

    def list(self) -> List[Dict[str, Any]]:
        """Summaries of every project, most recently updated first."""
        if not self.projects_dir.exists():
            return []

        summaries = []
        for path in self.projects_dir.glob("*.json"):
            try:
                record = read_json(path)
            except PersistenceError as e:
                logger.warning(f"Skipping unreadable project file {path.name}: {e}")
                continue
            if "id" not in record:
                continue
            summaries.append(summarize_record(record))

        summaries.sort(key=lambda s: s.get("updatedAt") or "", reverse=True)
        return summaries

    def delete(self, project_id: str) -> None:
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Failed to delete project {project_id}: {e}")
        logger.info(f"Deleted project {project_id}")

    def ensure_ready(self) -> None:
        ensure_directory(self.projects_dir)
