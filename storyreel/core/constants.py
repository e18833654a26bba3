"""
Storyreel Constants

Global constants used throughout the Storyreel pipeline.
"""

from enum import Enum
from typing import Dict, List

# =============================================================================
# VERSION INFO
# =============================================================================
VERSION = "1.0.0"
PROJECT_NAME = "Storyreel"
SNAPSHOT_VERSION = "1.0"

# =============================================================================
# LLM DEFAULTS
# =============================================================================
DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4000
ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"

# =============================================================================
# PIPELINE STAGES
# =============================================================================

class PipelineStage(Enum):
    """Stage index as shown in the generator (0 = concept, 7 = animation)."""
    CONCEPT = 0
    SHOTS_IN_PROGRESS = 1
    SHOTS = 2
    STYLE = 3
    CHARACTERS = 4
    BACKGROUNDS = 5
    ITEMS = 6
    ANIMATION = 7


# Names accepted by StoryPipeline.run_stage, in execution order
STAGE_ORDER: List[str] = [
    "shots",
    "style",
    "characters",
    "backgrounds",
    "items",
    "frames",
    "animation",
]

STAGE_LABELS: Dict[str, str] = {
    "shots": "Shots",
    "style": "Art Style",
    "characters": "Characters",
    "backgrounds": "Backgrounds",
    "items": "Items",
    "frames": "Frames",
    "animation": "Animation",
}


class StageTag:
    """Stage tags attached to LLM calls for the generation history."""
    STORY_CHAT = "story-chat"
    STORY_EXTRACT = "story-extract"
    ANALYSIS = "analysis"
    SCENE_PLAN = "scene-plan"
    SHOTS = "shots"
    STYLE = "style"
    CHARACTERS = "characters"
    BACKGROUNDS = "backgrounds"
    ITEMS = "items"
    FRAMES = "frames"
    ANIMATION = "animation"
    SHOT_REGEN = "shot-regen"
    STYLE_REGEN = "style-regen"
    CHARACTER_REGEN = "character-regen"
    BACKGROUND_REGEN = "background-regen"
    ITEM_REGEN = "item-regen"
    FRAME_REGEN = "frame-regen"
    FRAMES_REGEN = "frames-regen"
    ANIMATION_REGEN = "animation-regen"


# Max tokens per stage call
STAGE_MAX_TOKENS: Dict[str, int] = {
    StageTag.STORY_CHAT: 2000,
    StageTag.STORY_EXTRACT: 3000,
    StageTag.ANALYSIS: 500,
    StageTag.SCENE_PLAN: 3000,
    StageTag.SHOTS: 4000,
    StageTag.STYLE: 2000,
    StageTag.CHARACTERS: 3000,
    StageTag.BACKGROUNDS: 3000,
    StageTag.ITEMS: 3000,
    StageTag.FRAMES: 1500,
    StageTag.ANIMATION: 500,
    StageTag.SHOT_REGEN: 1000,
    StageTag.STYLE_REGEN: 2000,
    StageTag.CHARACTER_REGEN: 500,
    StageTag.BACKGROUND_REGEN: 500,
    StageTag.ITEM_REGEN: 500,
    StageTag.FRAME_REGEN: 800,
    StageTag.FRAMES_REGEN: 1500,
    StageTag.ANIMATION_REGEN: 500,
}

# =============================================================================
# BATCHING / PERSISTENCE
# =============================================================================
SCENES_PER_BATCH = 3
AUTOSAVE_DELAY = 2.0  # seconds of inactivity before autosave

# =============================================================================
# SHOT TIMING
# =============================================================================
DEFAULT_TARGET_DURATION = 60

MONTAGE_TIMING_MIN = 0.5
MONTAGE_TIMING_MAX = 1.5
STANDARD_TIMING_MIN = 1.5
STANDARD_TIMING_MAX = 6.0

# Runtime is rescaled when it falls outside [UNDER, OVER] x target
RECONCILE_UNDER_RATIO = 0.85
RECONCILE_OVER_RATIO = 1.30

# Narration read rate used to lengthen VO shots
NARRATION_WORDS_PER_SECOND = 2.5


class SceneType(Enum):
    """Pacing type of a planned scene."""
    FAST = "FAST"
    MEDIUM = "MEDIUM"
    SLOW = "SLOW"
    MONTAGE = "MONTAGE"


# Average shot length used to derive a target shot count
SCENE_AVG_SHOT_LENGTH: Dict[str, float] = {
    "SLOW": 4.0,
    "MEDIUM": 2.5,
    "FAST": 1.75,
}
DEFAULT_AVG_SHOT_LENGTH = 1.0

SCENE_TIMING_GUIDE: Dict[str, str] = {
    "SLOW": "3-5s per shot",
    "MEDIUM": "2-3s per shot",
    "FAST": "1.5-2s per shot",
}
DEFAULT_TIMING_GUIDE = "0.5-1.5s per shot"

# =============================================================================
# AUDIO
# =============================================================================

class AudioType(Enum):
    """Audio mode for the generated shot list."""
    NONE = "none"
    NARRATION = "narration"
    DIALOGUE = "dialogue"
    BOTH = "both"
    AUTO = "auto"


NARRATION_AUDIO = {AudioType.NARRATION.value, AudioType.BOTH.value}
DIALOGUE_AUDIO = {AudioType.DIALOGUE.value, AudioType.BOTH.value}

# =============================================================================
# ENTITIES
# =============================================================================
CHARACTER_ROLES = ["PROTAGONIST", "ANTAGONIST", "SECONDARY", "TERTIARY", "ANTIHERO"]
ROLE_PATTERN = r"\[(PROTAGONIST|ANTAGONIST|SECONDARY|TERTIARY|ANTIHERO)\]"

NO_ITEMS_SENTINEL = "NO_ITEMS_FOUND"
MIN_ENTITY_LINE_LENGTH = 20  # extractor lines must be longer than this
MAX_BACKGROUNDS_PER_SHOT = 2

DEFAULT_STYLE_INPUT = "Modern 2D Animation"
EXCLUDE_GENERIC = "Exclude: text, logos, watermarks"
EXCLUDE_BACKGROUND = "Exclude: people, characters, figures, text, logos, watermarks"
