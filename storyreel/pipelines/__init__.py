"""
Storyreel Pipelines Module

Generation stages that turn a story into image and video prompts.

Stages:
- ShotsStage: scene plan, then the shot list (batched by scene)
- StyleStage: art style guide
- CharactersStage / BackgroundsStage / ItemsStage: entity prompts
- FramesStage: first/last frame prompts (batched by scene)
- AnimationStage: motion prompts (batched by scene)

Support:
- StoryPipeline: runs stages against a project state
- Regenerator: targeted re-runs with optional user instructions
- story_chat: chat-assisted story drafting
"""

# Base stage
from .base_stage import BaseStage, StageResult, StageStatus

# Stages
from .shot_generator import ShotsStage, parse_shot_response, reconcile_durations, renumber_shots
from .entity_extractors import BackgroundsStage, CharactersStage, ItemsStage, StyleStage
from .frame_generator import FramesStage
from .animation_generator import AnimationStage

# Orchestration
from .orchestrator import STAGES, StoryPipeline
from .regeneration import Regenerator
from .scene_planner import plan_scenes
from .story_chat import (
    chat_transcript,
    extract_final_story,
    send_chat_message,
    use_last_assistant_message,
)

__all__ = [
    # Base
    'BaseStage',
    'StageResult',
    'StageStatus',
    # Stages
    'ShotsStage',
    'StyleStage',
    'CharactersStage',
    'BackgroundsStage',
    'ItemsStage',
    'FramesStage',
    'AnimationStage',
    # Shot helpers
    'parse_shot_response',
    'reconcile_durations',
    'renumber_shots',
    'plan_scenes',
    # Orchestration
    'STAGES',
    'StoryPipeline',
    'Regenerator',
    # Chat
    'chat_transcript',
    'extract_final_story',
    'send_chat_message',
    'use_last_assistant_message',
]
