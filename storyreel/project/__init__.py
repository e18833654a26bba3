"""
Storyreel Project Module

Data model, state container and persistence for generator projects.
"""

from .models import (
    Animation,
    Background,
    BatchProgress,
    Character,
    ChatMessage,
    ConfigInput,
    Frame,
    Item,
    ProjectData,
    ProjectMetadata,
    SceneInfo,
    ScenePlan,
    Shot,
    Style,
)
from .history import GenerationHistory
from .snapshot import (
    determine_current_stage,
    dumps_snapshot,
    export_snapshot,
    import_snapshot,
    loads_snapshot,
    snapshot_filename,
)
from .state import ProjectState
from .store import JsonProjectStore, ProjectStore

__all__ = [
    # Models
    'Animation',
    'Background',
    'BatchProgress',
    'Character',
    'ChatMessage',
    'ConfigInput',
    'Frame',
    'Item',
    'ProjectData',
    'ProjectMetadata',
    'SceneInfo',
    'ScenePlan',
    'Shot',
    'Style',
    # State and persistence
    'GenerationHistory',
    'JsonProjectStore',
    'ProjectState',
    'ProjectStore',
    # Snapshots
    'determine_current_stage',
    'dumps_snapshot',
    'export_snapshot',
    'import_snapshot',
    'loads_snapshot',
    'snapshot_filename',
]
