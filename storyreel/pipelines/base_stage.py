"""
Storyreel Base Stage

Abstract base class for the generation stages. A stage reads the project
state, makes one or more sequential LLM calls and writes its records back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from storyreel.core.config import PipelineConfig, get_config
from storyreel.core.constants import STAGE_LABELS
from storyreel.core.exceptions import PipelineStageError
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.project.state import ProjectState

logger = get_logger("pipelines.base")

ProgressCallback = Callable[[Dict[str, Any]], None]


class StageStatus(Enum):
    """Status of a stage execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StageResult:
    """Result from a stage execution."""
    stage: str
    status: StageStatus
    error: Optional[str] = None
    duration_seconds: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status in (StageStatus.COMPLETED, StageStatus.SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "status": self.status.value,
            "error": self.error,
            "durationSeconds": round(self.duration_seconds, 3),
            "metadata": self.metadata,
        }


def error_text(exc: BaseException) -> str:
    """User-facing message of an exception, without the details dump."""
    if isinstance(exc, PipelineStageError):
        return exc.reason
    return getattr(exc, "message", None) or str(exc) or "Unknown error"


class StageSkipped(Exception):
    """Raised inside a stage when there is nothing to do."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class BaseStage(ABC):
    """
    Base class for pipeline stages.

    Subclasses implement check_prerequisites() and _execute(). run() wraps
    execution with timing, logging and the error banner.
    """

    name: str = ""

    def __init__(
        self,
        state: ProjectState,
        llm: LLMCaller,
        config: Optional[PipelineConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.state = state
        self.llm = llm
        self.config = config or get_config()
        self._progress_callback = progress_callback
        self._status = StageStatus.PENDING

    @property
    def label(self) -> str:
        return STAGE_LABELS.get(self.name, self.name.title())

    @property
    def status(self) -> StageStatus:
        return self._status

    @abstractmethod
    def check_prerequisites(self) -> None:
        """Raise PrerequisiteError when the stage inputs do not exist yet."""
        pass

    @abstractmethod
    async def _execute(self) -> Dict[str, Any]:
        """Run the stage and return result counts."""
        pass

    def failure_message(self, exc: BaseException) -> str:
        """Text shown in the error banner when the stage fails."""
        return f"{self.label} failed: {error_text(exc)}"

    async def run(self) -> StageResult:
        """
        Run the stage.

        Failures are reported through the result and the state's error
        banner; data written before the failure stays in place.
        """
        self.check_prerequisites()

        start_time = datetime.now()
        self._status = StageStatus.RUNNING
        self.state.clear_error()
        logger.info(f"Starting stage: {self.name}")

        try:
            metadata = await self._execute()
        except StageSkipped as e:
            self._status = StageStatus.SKIPPED
            logger.info(f"Stage {self.name} skipped: {e.reason}")
            return StageResult(
                stage=self.name,
                status=StageStatus.SKIPPED,
                duration_seconds=self._get_duration(start_time),
                metadata={"reason": e.reason},
            )
        except Exception as e:
            self._status = StageStatus.FAILED
            message = self.failure_message(e)
            logger.error(f"Stage failed: {self.name} - {error_text(e)}")
            self.state.set_error(message)
            return StageResult(
                stage=self.name,
                status=StageStatus.FAILED,
                error=message,
                duration_seconds=self._get_duration(start_time),
            )

        self._status = StageStatus.COMPLETED
        duration = self._get_duration(start_time)
        logger.info(f"Stage {self.name} completed in {duration:.1f}s: {metadata}")
        return StageResult(
            stage=self.name,
            status=StageStatus.COMPLETED,
            duration_seconds=duration,
            metadata=metadata,
        )

    async def ask(
        self,
        tag: str,
        system: str,
        content: str,
        with_project: bool = True,
    ) -> str:
        """One single-turn LLM call. Returns the first text block."""
        project_id = self.state.project_id if with_project else None
        return await ask_llm(self.llm, self.config, tag, system, content, project_id)

    def report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress to callback."""
        if self._progress_callback:
            self._progress_callback({
                "stage": self.name,
                "current": current,
                "total": total,
                "message": message,
            })

    def _get_duration(self, start_time: datetime) -> float:
        return (datetime.now() - start_time).total_seconds()


def parse_pipe_lines(text: str, min_length: int) -> List[str]:
    """Lines of a "NAME | description" listing, longer than min_length."""
    return [line for line in text.split("\n") if "|" in line and len(line.strip()) > min_length]


async def ask_llm(
    llm: LLMCaller,
    config: PipelineConfig,
    tag: str,
    system: str,
    content: str,
    project_id: Optional[str] = None,
) -> str:
    """Single-turn call tagged for the history log."""
    response = await llm.call(
        system=system,
        messages=[{"role": "user", "content": content}],
        max_tokens=config.tokens_for(tag),
        stage=tag,
        project_id=project_id,
        model=config.model,
    )
    return response.text
