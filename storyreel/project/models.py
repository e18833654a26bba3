"""
Storyreel Project Models

Dataclasses for everything a project accumulates across the pipeline.
Serialized with the camelCase keys used by saved projects and snapshots.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from storyreel.core.constants import AudioType


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# =============================================================================
# INPUT
# =============================================================================

@dataclass
class ConfigInput:
    """Generation settings chosen before the shots stage."""
    style_preference: str = ""
    expected_duration: str = ""
    audio_type: str = AudioType.AUTO.value
    hook: str = "auto"
    aspect_ratio: str = "16:9"
    narration_pace: str = "normal"
    narration_complexity: str = "standard"
    dialogue_intensity: str = "medium"
    dialogue_complexity: str = "standard"
    content_complexity: str = "standard"
    auto_duration: bool = False

    # Filled in by the analysis call
    ai_recommended_duration: Optional[int] = None
    ai_recommended_audio: Optional[str] = None
    ai_reasoning: Optional[str] = None
    resolved_audio_type: Optional[str] = None
    resolved_duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "stylePreference": self.style_preference,
            "expectedDuration": self.expected_duration,
            "audioType": self.audio_type,
            "hook": self.hook,
            "aspectRatio": self.aspect_ratio,
            "narrationPace": self.narration_pace,
            "narrationComplexity": self.narration_complexity,
            "dialogueIntensity": self.dialogue_intensity,
            "dialogueComplexity": self.dialogue_complexity,
            "contentComplexity": self.content_complexity,
            "autoDuration": self.auto_duration,
            "aiRecommendedDuration": self.ai_recommended_duration,
            "aiRecommendedAudio": self.ai_recommended_audio,
            "aiReasoning": self.ai_reasoning,
            "resolvedAudioType": self.resolved_audio_type,
            "resolvedDuration": self.resolved_duration,
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ConfigInput':
        data = data or {}
        return cls(
            style_preference=data.get("stylePreference", ""),
            expected_duration=str(data.get("expectedDuration", "") or ""),
            audio_type=data.get("audioType", AudioType.AUTO.value),
            hook=data.get("hook", "auto"),
            aspect_ratio=data.get("aspectRatio", "16:9"),
            narration_pace=data.get("narrationPace", "normal"),
            narration_complexity=data.get("narrationComplexity", "standard"),
            dialogue_intensity=data.get("dialogueIntensity", "medium"),
            dialogue_complexity=data.get("dialogueComplexity", "standard"),
            content_complexity=data.get("contentComplexity", "standard"),
            auto_duration=bool(data.get("autoDuration", False)),
            ai_recommended_duration=data.get("aiRecommendedDuration"),
            ai_recommended_audio=data.get("aiRecommendedAudio"),
            ai_reasoning=data.get("aiReasoning"),
            resolved_audio_type=data.get("resolvedAudioType"),
            resolved_duration=data.get("resolvedDuration"),
        )


@dataclass
class ChatMessage:
    """One turn of the story-development chat."""
    role: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatMessage':
        return cls(role=data.get("role", "user"), content=data.get("content", ""))


# =============================================================================
# SHOTS
# =============================================================================

@dataclass
class Shot:
    """A single camera shot. Identity is (scene, shot_number)."""
    id: str
    scene: int
    shot_number: int
    framing: str = ""
    timing: float = 0.0
    beat: str = ""
    description: str = ""
    dialogue: str = ""
    vo: str = ""
    is_montage: Optional[bool] = None
    scene_vo: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.scene, self.shot_number)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "scene": self.scene,
            "shotNumber": self.shot_number,
            "framing": self.framing,
            "timing": self.timing,
            "beat": self.beat,
            "description": self.description,
            "dialogue": self.dialogue,
            "vo": self.vo,
            "isMontage": self.is_montage,
            "sceneVO": self.scene_vo,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shot':
        return cls(
            id=data.get("id", ""),
            scene=_int(data.get("scene")),
            shot_number=_int(data.get("shotNumber")),
            framing=data.get("framing", ""),
            timing=_float(data.get("timing")),
            beat=data.get("beat", ""),
            description=data.get("description", ""),
            dialogue=data.get("dialogue", ""),
            vo=data.get("vo", ""),
            is_montage=data.get("isMontage"),
            scene_vo=data.get("sceneVO"),
        )


@dataclass
class SceneInfo:
    """One entry of the scene plan."""
    scene: int
    type: str = "MEDIUM"
    location: str = ""
    duration: float = 0.0
    summary: str = ""
    audio_mode: Optional[str] = None
    story_beat: Optional[str] = None
    target_shots: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        # Scene plan keys mirror the model's JSON, hence snake_case here
        return _drop_none({
            "scene": self.scene,
            "type": self.type,
            "location": self.location,
            "duration": self.duration,
            "summary": self.summary,
            "audio_mode": self.audio_mode,
            "story_beat": self.story_beat,
            "target_shots": self.target_shots,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SceneInfo':
        target = data.get("target_shots")
        return cls(
            scene=_int(data.get("scene")),
            type=str(data.get("type") or "MEDIUM"),
            location=str(data.get("location") or ""),
            duration=_float(data.get("duration")),
            summary=str(data.get("summary") or ""),
            audio_mode=data.get("audio_mode"),
            story_beat=data.get("story_beat"),
            target_shots=_int(target) if target is not None else None,
        )


@dataclass
class ScenePlan:
    """Scene breakdown returned by the planning call."""
    scenes: List[SceneInfo] = field(default_factory=list)
    total_duration: float = 0.0
    audio_type: str = ""
    total_target_shots: int = 0
    resolved_duration: Optional[int] = None
    resolved_audio_type: Optional[str] = None

    def find_scene(self, scene: int) -> Optional[SceneInfo]:
        for info in self.scenes:
            if info.scene == scene:
                return info
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "scenes": [s.to_dict() for s in self.scenes],
            "totalDuration": self.total_duration,
            "audioType": self.audio_type,
            "totalTargetShots": self.total_target_shots,
            "resolvedDuration": self.resolved_duration,
            "resolvedAudioType": self.resolved_audio_type,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScenePlan':
        return cls(
            scenes=[SceneInfo.from_dict(s) for s in data.get("scenes") or []],
            total_duration=_float(data.get("totalDuration")),
            audio_type=data.get("audioType") or "",
            total_target_shots=_int(data.get("totalTargetShots")),
            resolved_duration=data.get("resolvedDuration"),
            resolved_audio_type=data.get("resolvedAudioType"),
        )


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class Style:
    """Stage 3 art-style record."""
    style: str = ""
    ai_generation_prompt: str = ""
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "style": self.style,
            "aiGenerationPrompt": self.ai_generation_prompt,
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Style':
        data = data or {}
        return cls(
            id=data.get("id"),
            style=data.get("style", ""),
            ai_generation_prompt=data.get("aiGenerationPrompt", ""),
        )


@dataclass
class Entity:
    """A character, background or item: a name plus one visual prompt."""
    id: str
    name: str
    visual_prompt: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "visualPrompt": self.visual_prompt}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            visual_prompt=data.get("visualPrompt", ""),
        )


class Character(Entity):
    pass


class Background(Entity):
    pass


class Item(Entity):
    pass


# =============================================================================
# FRAMES / ANIMATION
# =============================================================================

@dataclass
class Frame:
    """First/last still-image prompts for one shot."""
    id: str
    scene: int
    shot_number: int
    duration: float = 0.0
    first_frame: str = ""
    last_frame: str = ""
    character_ids: Optional[List[str]] = None
    background_ids: Optional[List[str]] = None
    item_ids: Optional[List[str]] = None

    @property
    def key(self) -> tuple:
        return (self.scene, self.shot_number)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "scene": self.scene,
            "shotNumber": self.shot_number,
            "duration": self.duration,
            "firstFrame": self.first_frame,
            "lastFrame": self.last_frame,
            "characterIds": self.character_ids,
            "backgroundIds": self.background_ids,
            "itemIds": self.item_ids,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Frame':
        return cls(
            id=data.get("id", ""),
            scene=_int(data.get("scene")),
            shot_number=_int(data.get("shotNumber")),
            duration=_float(data.get("duration")),
            first_frame=data.get("firstFrame", ""),
            last_frame=data.get("lastFrame", ""),
            character_ids=data.get("characterIds"),
            background_ids=data.get("backgroundIds"),
            item_ids=data.get("itemIds"),
        )


@dataclass
class Animation:
    """Motion prompt for one shot."""
    id: str
    scene: int
    shot_number: int
    duration: float = 0.0
    animation_prompt: str = ""

    @property
    def key(self) -> tuple:
        return (self.scene, self.shot_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scene": self.scene,
            "shotNumber": self.shot_number,
            "duration": self.duration,
            "animationPrompt": self.animation_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Animation':
        return cls(
            id=data.get("id", ""),
            scene=_int(data.get("scene")),
            shot_number=_int(data.get("shotNumber")),
            duration=_float(data.get("duration")),
            animation_prompt=data.get("animationPrompt", ""),
        )


# =============================================================================
# PROJECT
# =============================================================================

@dataclass
class ProjectMetadata:
    """Totals derived by the shots stage."""
    total_shots: int = 0
    total_scenes: int = 0
    estimated_runtime: float = 0.0
    target_duration: int = 0
    resolved_audio_type: str = ""
    aspect_ratio: str = "16:9"
    scene_plan: Optional[ScenePlan] = None
    ai_recommendations: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "totalShots": self.total_shots,
            "totalScenes": self.total_scenes,
            "estimatedRuntime": self.estimated_runtime,
            "targetDuration": self.target_duration,
            "resolvedAudioType": self.resolved_audio_type,
            "aspectRatio": self.aspect_ratio,
            "scenePlan": self.scene_plan.to_dict() if self.scene_plan else None,
            "aiRecommendations": self.ai_recommendations,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectMetadata':
        plan = data.get("scenePlan")
        return cls(
            total_shots=_int(data.get("totalShots")),
            total_scenes=_int(data.get("totalScenes")),
            estimated_runtime=_float(data.get("estimatedRuntime")),
            target_duration=_int(data.get("targetDuration")),
            resolved_audio_type=data.get("resolvedAudioType", ""),
            aspect_ratio=data.get("aspectRatio", "16:9"),
            scene_plan=ScenePlan.from_dict(plan) if plan else None,
            ai_recommendations=data.get("aiRecommendations"),
        )


@dataclass
class ProjectData:
    """The full pipeline state for one project."""
    script: Optional[str] = None
    config: Optional[ConfigInput] = None
    shots: List[Shot] = field(default_factory=list)
    style: Style = field(default_factory=Style)
    characters: List[Character] = field(default_factory=list)
    backgrounds: List[Background] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    frames: List[Frame] = field(default_factory=list)
    animations: List[Animation] = field(default_factory=list)
    metadata: Optional[ProjectMetadata] = None

    @property
    def scene_plan(self) -> Optional[ScenePlan]:
        return self.metadata.scene_plan if self.metadata else None

    def find_shot(self, scene: int, shot_number: int) -> Optional[Shot]:
        for shot in self.shots:
            if shot.scene == scene and shot.shot_number == shot_number:
                return shot
        return None

    def scene_numbers(self) -> List[int]:
        """Distinct scene numbers of the shot list, ascending."""
        return sorted({s.scene for s in self.shots})

    def has_frame(self, scene: int, shot_number: int) -> bool:
        return any(f.scene == scene and f.shot_number == shot_number for f in self.frames)

    def has_animation(self, scene: int, shot_number: int) -> bool:
        return any(a.scene == scene and a.shot_number == shot_number for a in self.animations)

    def to_dict(self) -> Dict[str, Any]:
        stage1 = _drop_none({
            "script": self.script,
            "config": self.config.to_dict() if self.config else None,
        })
        return _drop_none({
            "stage1": stage1,
            "stage2": [s.to_dict() for s in self.shots],
            "stage3": self.style.to_dict(),
            "stage4": [c.to_dict() for c in self.characters],
            "stage5": [b.to_dict() for b in self.backgrounds],
            "stage6": [i.to_dict() for i in self.items],
            "stage7": [f.to_dict() for f in self.frames],
            "stage8": [a.to_dict() for a in self.animations],
            "metadata": self.metadata.to_dict() if self.metadata else None,
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ProjectData':
        data = data or {}
        stage1 = data.get("stage1") or {}
        config = stage1.get("config")
        metadata = data.get("metadata")
        return cls(
            script=stage1.get("script"),
            config=ConfigInput.from_dict(config) if config is not None else None,
            shots=[Shot.from_dict(s) for s in data.get("stage2") or []],
            style=Style.from_dict(data.get("stage3")),
            characters=[Character.from_dict(c) for c in data.get("stage4") or []],
            backgrounds=[Background.from_dict(b) for b in data.get("stage5") or []],
            items=[Item.from_dict(i) for i in data.get("stage6") or []],
            frames=[Frame.from_dict(f) for f in data.get("stage7") or []],
            animations=[Animation.from_dict(a) for a in data.get("stage8") or []],
            metadata=ProjectMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass
class BatchProgress:
    """Scenes already processed by the frame and animation stages."""
    stage7_scenes_completed: int = 0
    stage8_scenes_completed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage7ScenesCompleted": self.stage7_scenes_completed,
            "stage8ScenesCompleted": self.stage8_scenes_completed,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BatchProgress':
        data = data or {}
        return cls(
            stage7_scenes_completed=_int(data.get("stage7ScenesCompleted")),
            stage8_scenes_completed=_int(data.get("stage8ScenesCompleted")),
        )
