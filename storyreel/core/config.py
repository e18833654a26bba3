"""
Storyreel Pipeline Configuration

Tuning values for the generation pipeline, loaded from JSON.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .constants import (
    AUTOSAVE_DELAY,
    DEFAULT_MODEL,
    DEFAULT_STYLE_INPUT,
    SCENES_PER_BATCH,
    STAGE_MAX_TOKENS,
)
from .exceptions import ConfigurationError, InvalidConfigError
from .settings import get_settings


@dataclass
class PipelineConfig:
    """Configuration for the stage generators."""
    model: str = DEFAULT_MODEL
    scenes_per_batch: int = SCENES_PER_BATCH
    autosave_delay: float = AUTOSAVE_DELAY
    default_style: str = DEFAULT_STYLE_INPUT
    max_tokens: Dict[str, int] = field(default_factory=lambda: dict(STAGE_MAX_TOKENS))

    def tokens_for(self, stage: str) -> int:
        """Max tokens for a stage tag."""
        return self.max_tokens.get(stage, STAGE_MAX_TOKENS.get(stage, 4000))

    @classmethod
    def from_dict(cls, data: dict) -> 'PipelineConfig':
        """Create PipelineConfig from dictionary."""
        config = cls()
        config.model = data.get('model', config.model)
        config.default_style = data.get('default_style', config.default_style)

        scenes_per_batch = data.get('scenes_per_batch', config.scenes_per_batch)
        if not isinstance(scenes_per_batch, int) or scenes_per_batch < 1:
            raise InvalidConfigError(
                f"scenes_per_batch must be a positive integer, got {scenes_per_batch!r}"
            )
        config.scenes_per_batch = scenes_per_batch

        autosave_delay = data.get('autosave_delay', config.autosave_delay)
        if not isinstance(autosave_delay, (int, float)) or autosave_delay < 0:
            raise InvalidConfigError(
                f"autosave_delay must be a non-negative number, got {autosave_delay!r}"
            )
        config.autosave_delay = float(autosave_delay)

        if 'max_tokens' in data:
            max_tokens = data['max_tokens']
            if not isinstance(max_tokens, dict):
                raise InvalidConfigError(
                    f"max_tokens must be a mapping of stage tag to token limit, got {max_tokens!r}"
                )
            try:
                config.max_tokens.update({k: int(v) for k, v in max_tokens.items()})
            except (TypeError, ValueError) as e:
                raise InvalidConfigError(f"max_tokens values must be integers: {e}") from e

        return config

    def to_dict(self) -> dict:
        return {
            'model': self.model,
            'scenes_per_batch': self.scenes_per_batch,
            'autosave_delay': self.autosave_delay,
            'default_style': self.default_style,
            'max_tokens': dict(self.max_tokens),
        }


def load_config(config_path: Path = None) -> PipelineConfig:
    """
    Load pipeline configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded PipelineConfig instance
    """
    if config_path is None:
        config_path = Path("config/pipeline.json")

    if not config_path.exists():
        return PipelineConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config: {e}")

    return PipelineConfig.from_dict(data)


_config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config(get_settings().pipeline_config)
    return _config


def set_config(config: PipelineConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
