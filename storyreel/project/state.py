"""
Storyreel Project State

In-memory container for one project, with debounced autosave to a store.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from storyreel.core.constants import AUTOSAVE_DELAY, PipelineStage
from storyreel.core.exceptions import ProjectError, StoryreelError
from storyreel.core.logging_config import get_logger
from storyreel.project.models import (
    BatchProgress,
    ChatMessage,
    ConfigInput,
    ProjectData,
)
from storyreel.project.snapshot import determine_current_stage, expanded_sections
from storyreel.project.store import ProjectStore

logger = get_logger("project.state")

EDITABLE_SHOT_FIELDS = ("framing", "timing", "beat", "description", "dialogue", "vo")


class ProjectState:
    """
    Everything the generator holds for one project.

    Mutations go through the update_* methods (or mark_changed() after an
    in-place edit). Each change re-arms a single autosave timer; when it
    fires, the full state is written to the store. Persistence failures are
    surfaced in `error` and never roll back memory.
    """

    def __init__(
        self,
        store: Optional[ProjectStore] = None,
        autosave_delay: float = AUTOSAVE_DELAY,
    ):
        self.store = store
        self.autosave_delay = autosave_delay

        self.project_id: Optional[str] = None
        self.name: str = ""
        self.script_input: str = ""
        self.config_input = ConfigInput()
        self.project_data = ProjectData()
        self.batch_progress = BatchProgress()
        self.chat_messages: List[ChatMessage] = []
        self.completed_prompts: Dict[str, bool] = {}
        self.current_stage: int = PipelineStage.CONCEPT.value
        self.expanded_sections: Dict[str, bool] = {}

        self.error: Optional[str] = None
        self.is_saving = False
        self.last_saved: Optional[datetime] = None

        self._has_changes = False
        self._save_task: Optional[asyncio.Task] = None

    # =========================================================================
    # MUTATION
    # =========================================================================

    @property
    def has_changes(self) -> bool:
        return self._has_changes

    def mark_changed(self) -> None:
        self._has_changes = True
        self._schedule_autosave()

    def update_script_input(self, value: str) -> None:
        self.script_input = value
        self.mark_changed()

    def update_config_input(self, value: ConfigInput) -> None:
        self.config_input = value
        self.mark_changed()

    def update_project_data(self, value: ProjectData) -> None:
        self.project_data = value
        self.mark_changed()

    def update_batch_progress(self, value: BatchProgress) -> None:
        self.batch_progress = value
        self.mark_changed()

    def update_chat_messages(self, value: List[ChatMessage]) -> None:
        self.chat_messages = value
        self.mark_changed()

    def update_completed_prompts(self, value: Dict[str, bool]) -> None:
        self.completed_prompts = value
        self.mark_changed()

    def set_current_stage(self, stage: int) -> None:
        self.current_stage = stage
        self.mark_changed()

    def set_error(self, message: Optional[str]) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def toggle_complete(self, prompt_id: str) -> bool:
        """Flip the completion flag of a prompt and return the new value."""
        value = not self.completed_prompts.get(prompt_id, False)
        self.completed_prompts[prompt_id] = value
        self.mark_changed()
        return value

    def edit_shot_field(self, shot_id: str, field: str, value: Any) -> None:
        """Manual edit of one shot field. Unparseable timings keep the old value."""
        if field not in EDITABLE_SHOT_FIELDS:
            raise ValueError(f"Shot field '{field}' is not editable")

        for shot in self.project_data.shots:
            if shot.id != shot_id:
                continue
            if field == "timing":
                try:
                    timing = float(value)
                except (TypeError, ValueError):
                    timing = 0.0
                shot.timing = timing or shot.timing
            else:
                setattr(shot, field, str(value))
        self.mark_changed()

    def edit_prompt(self, kind: str, target_id: str, value: str, field: Optional[str] = None) -> None:
        """Manual edit of a generated prompt."""
        data = self.project_data
        if kind == "style":
            data.style.ai_generation_prompt = value
        elif kind in ("character", "background", "item"):
            records = {
                "character": data.characters,
                "background": data.backgrounds,
                "item": data.items,
            }[kind]
            for record in records:
                if record.id == target_id:
                    record.visual_prompt = value
        elif kind == "frame":
            if field not in ("firstFrame", "lastFrame"):
                raise ValueError("Frame edits need field 'firstFrame' or 'lastFrame'")
            for frame in data.frames:
                if frame.id == target_id:
                    if field == "firstFrame":
                        frame.first_frame = value
                    else:
                        frame.last_frame = value
        elif kind == "animation":
            for anim in data.animations:
                if anim.id == target_id:
                    anim.animation_prompt = value
        else:
            raise ValueError(f"Unknown prompt kind '{kind}'")
        self.mark_changed()

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_record(self) -> Dict[str, Any]:
        """Full state in the stored-project shape."""
        return {
            "name": self.name,
            "scriptInput": self.script_input,
            "configInput": self.config_input.to_dict(),
            "projectData": self.project_data.to_dict(),
            "batchProgress": self.batch_progress.to_dict(),
            "chatMessages": [m.to_dict() for m in self.chat_messages],
            "completedPrompts": dict(self.completed_prompts),
        }

    def apply_record(self, record: Dict[str, Any], partial: bool = False) -> None:
        """
        Restore state from a stored project or an imported snapshot.

        With partial=True only the keys present in the record are applied
        (blank strings count as absent) and the result counts as a change.
        """
        def present(key: str) -> bool:
            return record.get(key) is not None

        def has_text(key: str) -> bool:
            return bool(record.get(key))

        if has_text("scriptInput") or not partial:
            self.script_input = record.get("scriptInput") or ""
        if present("configInput") or not partial:
            self.config_input = ConfigInput.from_dict(record.get("configInput"))
        if present("projectData") or not partial:
            self.project_data = ProjectData.from_dict(record.get("projectData"))
        if present("batchProgress") or not partial:
            self.batch_progress = BatchProgress.from_dict(record.get("batchProgress"))
        if present("chatMessages") or not partial:
            self.chat_messages = [ChatMessage.from_dict(m) for m in record.get("chatMessages") or []]
        if present("completedPrompts") or not partial:
            self.completed_prompts = dict(record.get("completedPrompts") or {})
        if has_text("name") or not partial:
            self.name = record.get("name") or ""

        self.current_stage = determine_current_stage(self.project_data)
        self.expanded_sections = expanded_sections(self.project_data)

        if partial:
            self.mark_changed()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def load(self, project_id: str) -> None:
        """Replace the state with a stored project."""
        if self.store is None:
            raise ProjectError("No project store configured")

        self.close()
        self.error = None
        try:
            record = self.store.get(project_id)
        except ProjectError as e:
            self.error = e.message
            raise

        self.project_id = record.get("id", project_id)
        self.apply_record(record)
        self._has_changes = False
        logger.info(f"Loaded project {self.project_id} at stage {self.current_stage}")

    def new_project(self) -> None:
        """Reset to an empty, unsaved project."""
        self.close()
        self.project_id = None
        self.name = ""
        self.script_input = ""
        self.config_input = ConfigInput()
        self.project_data = ProjectData()
        self.batch_progress = BatchProgress()
        self.chat_messages = []
        self.completed_prompts = {}
        self.current_stage = PipelineStage.CONCEPT.value
        self.expanded_sections = {}
        self.last_saved = None
        self.error = None
        self._has_changes = False

    async def save(self) -> bool:
        """Write the full state to the existing project. Returns success."""
        if self.store is None or not self.project_id:
            return False

        self.is_saving = True
        try:
            self.store.update(self.project_id, self.to_record())
            self.last_saved = datetime.now()
            self._has_changes = False
            return True
        except StoryreelError as e:
            logger.error(f"Save failed for {self.project_id}: {e}")
            self.error = e.message
            return False
        finally:
            self.is_saving = False

    async def create(self, name: str) -> Optional[Dict[str, Any]]:
        """Store the state as a new project and adopt its id."""
        if self.store is None:
            self.error = "No project store configured"
            return None

        self.is_saving = True
        self.error = None
        try:
            return self._create(name)
        except StoryreelError as e:
            logger.error(f"Create failed: {e}")
            self.error = e.message
            return None
        finally:
            self.is_saving = False

    def _create(self, name: str) -> Dict[str, Any]:
        record = self.store.create(name, self.to_record())
        self.project_id = record["id"]
        self.name = record.get("name", name)
        self.last_saved = datetime.now()
        self._has_changes = False
        return record

    async def _autosave_now(self) -> None:
        if self.project_id:
            await self.save()
        elif self.project_data.shots:
            now = datetime.now()
            name = f"Auto-save {now:%Y-%m-%d} {now:%H:%M:%S}"
            try:
                self._create(name)
                logger.info(f"Auto-created project {self.project_id}")
            except StoryreelError as e:
                # the banner is reserved for explicit saves
                logger.warning(f"Auto-create failed: {e}")

    def _autosave_due(self) -> bool:
        if self.store is None or not self._has_changes:
            return False
        return bool(self.project_id) or bool(self.project_data.shots)

    def _schedule_autosave(self) -> None:
        if not self._autosave_due():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet; flush() picks the change up later
            return

        self._cancel_timer()
        self._save_task = loop.create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.autosave_delay)
        await self._autosave_now()

    def _cancel_timer(self) -> None:
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = None

    async def flush(self) -> None:
        """Run any pending autosave immediately and wait for it."""
        task = self._save_task
        if task is not None and not task.done():
            task.cancel()
        self._save_task = None
        if self._autosave_due():
            await self._autosave_now()

    def close(self) -> None:
        """Drop the pending autosave without writing."""
        self._cancel_timer()
