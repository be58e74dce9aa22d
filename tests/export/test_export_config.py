"""
Tests for export configuration and progress reporting.
"""

from pathlib import Path

import pytest

from sitereport.export import ExportConfig
from sitereport.export.progress import ProgressTracker


class TestExportConfig:
    def test_defaults(self):
        config = ExportConfig()

        assert config.capture_scale == 3
        assert config.padding_mm == 15
        assert config.image_timeout == 1.5
        assert config.output_dir == Path(".")

    def test_snapshot_scale_defaults_to_capture_scale(self):
        assert ExportConfig(capture_scale=2).snapshot_scale == 2
        assert ExportConfig(minimap_scale=1.5).snapshot_scale == 1.5

    def test_fast_has_no_waits(self):
        config = ExportConfig.fast(padding_mm=10)

        assert config.capture_scale == 1
        assert config.capture_settle_delay == 0
        assert config.map_settle_delay == 0
        assert config.padding_mm == 10

    @pytest.mark.parametrize("field, value", [
        ("capture_scale", 0),
        ("map_scale", -1),
        ("minimap_scale", 0),
        ("padding_mm", -1),
        ("padding_mm", 105),
        ("image_timeout", -0.1),
        ("map_settle_delay", -1),
    ])
    def test_when_value_invalid_then_raises(self, field, value):
        with pytest.raises(ValueError, match=field):
            ExportConfig(**{field: value})


class TestProgressTracker:
    def test_updates_reach_callback_and_clear_sends_empty(self):
        received = []
        progress = ProgressTracker(received.append)

        progress.update("Building title page...")
        progress.clear()

        assert received == ["Building title page...", ""]
        assert not progress.active

    def test_clear_without_updates_is_silent(self):
        received = []

        ProgressTracker(received.append).clear()

        assert received == []

    def test_callback_errors_are_swallowed(self):
        def callback(message):
            raise RuntimeError("UI gone")

        progress = ProgressTracker(callback)
        progress.update("Capturing maps...")

        assert progress.messages == ["Capturing maps..."]

    def test_no_callback(self):
        progress = ProgressTracker()

        progress.update("Finalizing PDF...")

        assert progress.active
