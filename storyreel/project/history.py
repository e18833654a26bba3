"""
Storyreel Generation History

Append-only JSON-lines log of stage-tagged LLM calls.
"""

import json
import math
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from storyreel.core.exceptions import PersistenceError
from storyreel.core.logging_config import get_logger
from storyreel.utils.file_utils import ensure_directory

logger = get_logger("project.history")


class GenerationHistory:
    """
    History collaborator for the LLM client.

    The pipeline only writes here; page() exists for whoever displays the log.
    """

    def __init__(self, history_file: Path):
        self.history_file = Path(history_file)

    def record(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Append one entry and return it with its id and timestamp."""
        row = {
            "id": uuid.uuid4().hex,
            "userId": entry.get("user_id"),
            "projectId": entry.get("project_id"),
            "stage": entry.get("stage"),
            "prompt": entry.get("prompt", ""),
            "response": entry.get("response", ""),
            "tokensUsed": entry.get("tokens_used"),
            "createdAt": datetime.now().isoformat(),
        }

        ensure_directory(self.history_file.parent)
        try:
            with open(self.history_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(row, ensure_ascii=False) + "\n")
        except OSError as e:
            raise PersistenceError(f"Failed to write history: {e}")

        logger.debug(f"Recorded {row['stage']} call ({row['tokensUsed']} tokens)")
        return row

    def _read_all(self) -> List[Dict[str, Any]]:
        if not self.history_file.exists():
            return []

        rows = []
        try:
            with open(self.history_file, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        rows.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.warning(f"Skipping corrupt history line {line_no}")
        except OSError as e:
            raise PersistenceError(f"Failed to read history: {e}")
        return rows

    def page(
        self,
        page: int = 1,
        limit: int = 50,
        project_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Newest-first page of entries with totals."""
        page = max(page, 1)
        limit = max(limit, 1)

        rows = self._read_all()
        all_tokens = sum(r.get("tokensUsed") or 0 for r in rows)
        if project_id:
            rows = [r for r in rows if r.get("projectId") == project_id]
        # appended in order, so reversed is newest first
        rows.reverse()

        total = len(rows)
        start = (page - 1) * limit
        return {
            "history": rows[start:start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
            "stats": {
                "totalGenerations": total,
                "totalTokensUsed": all_tokens,
            },
        }

    def delete(self, entry_id: Optional[str] = None) -> None:
        """Delete one entry, or clear the log when no id is given."""
        if entry_id is None:
            if self.history_file.exists():
                self.history_file.unlink()
            return

        rows = [r for r in self._read_all() if r.get("id") != entry_id]
        lines = "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in rows)
        tmp = self.history_file.with_suffix(self.history_file.suffix + ".tmp")
        try:
            tmp.write_text(lines, encoding="utf-8")
            tmp.replace(self.history_file)
        except OSError as e:
            raise PersistenceError(f"Failed to rewrite history: {e}")
