"""
Storyreel Story Pipeline

Runs the generation stages against one project state. Stages are manually
triggered one at a time; run_all() strings them together for headless use.
"""

from typing import Dict, List, Optional, Type

from storyreel.core.config import PipelineConfig, get_config
from storyreel.core.constants import STAGE_ORDER
from storyreel.core.exceptions import PrerequisiteError
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.pipelines.animation_generator import AnimationStage
from storyreel.pipelines.base_stage import BaseStage, ProgressCallback, StageResult, StageStatus
from storyreel.pipelines.entity_extractors import (
    BackgroundsStage,
    CharactersStage,
    ItemsStage,
    StyleStage,
)
from storyreel.pipelines.frame_generator import FramesStage
from storyreel.pipelines.regeneration import Regenerator
from storyreel.pipelines.shot_generator import ShotsStage
from storyreel.project.state import ProjectState

logger = get_logger("pipelines.orchestrator")

STAGES: Dict[str, Type[BaseStage]] = {
    "shots": ShotsStage,
    "style": StyleStage,
    "characters": CharactersStage,
    "backgrounds": BackgroundsStage,
    "items": ItemsStage,
    "frames": FramesStage,
    "animation": AnimationStage,
}

# Stages that work through the scenes a batch at a time
BATCHED_STAGES = ("frames", "animation")


class StoryPipeline:
    """
    Story-to-prompts pipeline over one project.

    Stage order:
    1. shots (scene plan + shot list)
    2. style
    3. characters
    4. backgrounds
    5. items
    6. frames (batched by scene)
    7. animation (batched by scene)
    """

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
        self.progress_callback = progress_callback

    @property
    def regenerator(self) -> Regenerator:
        return Regenerator(self.state, self.llm, self.config)

    def create_stage(self, name: str) -> BaseStage:
        stage_class = STAGES.get(name)
        if stage_class is None:
            raise PrerequisiteError(
                f"Unknown stage '{name}'",
                {"known_stages": list(STAGE_ORDER)},
            )
        return stage_class(self.state, self.llm, self.config, self.progress_callback)

    async def run_stage(self, name: str) -> StageResult:
        """
        Run one stage.

        Raises:
            PrerequisiteError: Unknown stage, or its inputs do not exist yet
        """
        return await self.create_stage(name).run()

    async def run_all(self) -> List[StageResult]:
        """
        Run every stage in order, looping the batched stages until all
        scenes are covered. Stops at the first failure.
        """
        results: List[StageResult] = []

        for name in STAGE_ORDER:
            while True:
                result = await self.run_stage(name)
                results.append(result)

                if result.status == StageStatus.FAILED:
                    logger.error(f"Pipeline stopped at {name}: {result.error}")
                    return results
                if name not in BATCHED_STAGES or result.status == StageStatus.SKIPPED:
                    break

            if name == "shots" and not self.state.project_data.shots:
                logger.warning("No shots were produced; stopping")
                return results

        logger.info(f"Pipeline finished: {len(results)} stage runs")
        return results
