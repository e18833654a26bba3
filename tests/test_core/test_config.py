"""
Tests for Configuration Module

Tests for storyreel/core/config.py and storyreel/core/settings.py
"""

import pytest
import json
from pathlib import Path

from storyreel.core.config import (
    PipelineConfig,
    get_config,
    load_config,
    set_config,
)
from storyreel.core.constants import SCENES_PER_BATCH, STAGE_MAX_TOKENS, StageTag
from storyreel.core.exceptions import InvalidConfigError
from storyreel.core.settings import Settings


class TestPipelineConfig:
    """Tests for PipelineConfig class."""

    def test_default_config(self):
        """Test default configuration creation."""
        config = PipelineConfig()

        assert config.scenes_per_batch == SCENES_PER_BATCH
        assert config.autosave_delay == 2.0
        assert config.default_style == "Modern 2D Animation"

    def test_tokens_for_stage(self):
        config = PipelineConfig()

        assert config.tokens_for(StageTag.SHOTS) == 4000
        assert config.tokens_for(StageTag.ANALYSIS) == 500
        assert config.tokens_for(StageTag.FRAMES) == 1500
        assert config.tokens_for("unknown-stage") == 4000

    def test_config_from_dict(self):
        """Test creating config from dictionary."""
        config = PipelineConfig.from_dict({
            "model": "claude-test",
            "scenes_per_batch": 2,
            "max_tokens": {"shots": 6000},
        })

        assert config.model == "claude-test"
        assert config.scenes_per_batch == 2
        assert config.tokens_for(StageTag.SHOTS) == 6000
        # untouched stages keep their defaults
        assert config.tokens_for(StageTag.STYLE) == STAGE_MAX_TOKENS[StageTag.STYLE]

    def test_invalid_batch_size(self):
        with pytest.raises(InvalidConfigError):
            PipelineConfig.from_dict({"scenes_per_batch": 0})

    def test_invalid_autosave_delay(self):
        with pytest.raises(InvalidConfigError):
            PipelineConfig.from_dict({"autosave_delay": -1})

    @pytest.mark.parametrize("max_tokens", [
        ["shots", 4000],
        {"shots": "lots"},
        {"shots": None},
    ])
    def test_invalid_max_tokens(self, max_tokens):
        with pytest.raises(InvalidConfigError, match="max_tokens"):
            PipelineConfig.from_dict({"max_tokens": max_tokens})

    def test_config_to_dict(self):
        """Test converting config to dictionary."""
        data = PipelineConfig().to_dict()

        assert data["scenes_per_batch"] == SCENES_PER_BATCH
        assert "max_tokens" in data


class TestLoadConfig:
    """Tests for config file loading."""

    def test_missing_file_gives_defaults(self, temp_dir):
        config = load_config(temp_dir / "missing.json")

        assert config.scenes_per_batch == SCENES_PER_BATCH

    def test_load_from_file(self, temp_dir):
        path = temp_dir / "pipeline.json"
        path.write_text(json.dumps({"scenes_per_batch": 5}), encoding="utf-8")

        assert load_config(path).scenes_per_batch == 5

    def test_invalid_json(self, temp_dir):
        path = temp_dir / "pipeline.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidConfigError):
            load_config(path)

    def test_set_and_get_config(self):
        previous = get_config()
        custom = PipelineConfig(scenes_per_batch=7)
        try:
            set_config(custom)
            assert get_config() is custom
        finally:
            set_config(previous)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("STORYREEL_PORT", "9123")
        monkeypatch.setenv("STORYREEL_PROJECTS_DIR", "/tmp/storyreel-projects")

        settings = Settings()

        assert settings.port == 9123
        assert settings.projects_dir == Path("/tmp/storyreel-projects")

    def test_no_timeout_by_default(self):
        assert Settings().request_timeout is None
