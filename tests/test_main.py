"""Tests for the command line entry point."""

import json

import pytest

from storyreel.__main__ import build_parser, run_headless
from storyreel.core.config import PipelineConfig


class TestParser:

    def test_run_defaults(self):
        args = build_parser().parse_args(["run", "--story", "story.txt"])

        assert args.command == "run"
        assert args.duration == "auto"
        assert args.audio == "auto"
        assert args.verbose is True
        assert args.out is None

    def test_quiet_and_serve(self):
        args = build_parser().parse_args(["--quiet", "serve", "--port", "9000"])

        assert args.verbose is False
        assert args.command == "serve"
        assert args.port == 9000

    def test_audio_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "--story", "s.txt", "--audio", "music"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestRunHeadless:

    @pytest.mark.asyncio
    async def test_missing_story_file(self, temp_dir):
        args = build_parser().parse_args(["run", "--story", str(temp_dir / "missing.txt")])

        assert await run_headless(args, PipelineConfig()) == 1

    @pytest.mark.asyncio
    async def test_blank_story_writes_snapshot(self, temp_dir, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        story = temp_dir / "empty_tale.txt"
        story.write_text("   ", encoding="utf-8")
        out = temp_dir / "out.json"
        args = build_parser().parse_args([
            "run", "--story", str(story), "--duration", "45", "--audio", "none", "--out", str(out),
        ])

        assert await run_headless(args, PipelineConfig()) == 0

        snapshot = json.loads(out.read_text(encoding="utf-8"))
        assert snapshot["name"] == "empty_tale"
        assert snapshot["configInput"]["expectedDuration"] == "45"
        assert snapshot["configInput"]["audioType"] == "none"
