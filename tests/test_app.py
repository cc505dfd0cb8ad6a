"""
Tests for the Application Wiring
=================================
"""

import copy
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from handmorph.control.camera_rig import AUTONOMOUS
from handmorph.main import HandMorphApp, create_app_config
from handmorph.utils.config import DEFAULTS


@pytest.fixture
def app_config():
    config = create_app_config(copy.deepcopy(DEFAULTS))
    config.preview = False
    return config


class TestCreateAppConfig:
    def test_from_defaults(self, app_config):
        assert app_config.capture.width == 640
        assert app_config.render_fps == 60
        assert app_config.pipeline.calibration.neutral_zoom == pytest.approx(31.0 / 45.0)
        assert app_config.log_file is None

    def test_visualizer_section(self):
        config_dict = copy.deepcopy(DEFAULTS)
        config_dict["visualizer"].update(show_rates=False, canvas_size=[320, 240])

        config = create_app_config(config_dict)

        assert config.visualizer.show_rates is False
        assert config.visualizer.canvas_size == (320, 240)


class TestHandMorphApp:
    """Degraded runs need neither a camera nor the hand model."""

    def test_start_without_camera(self, app_config):
        app = HandMorphApp(app_config, use_camera=False)
        app.start()

        assert app.pipeline.degraded
        assert app.pipeline.degraded_reason == "camera disabled"
        app.stop()

    def test_preview_uses_visualizer_config(self, app_config):
        app_config.preview = True
        app_config.visualizer.canvas_size = (320, 240)
        app = HandMorphApp(app_config, use_camera=False)
        app.start()

        assert app._visualizer.blank_canvas().shape == (240, 320, 3)
        app.stop()

    def test_keys(self, app_config):
        app = HandMorphApp(app_config, use_camera=False)
        app.start()

        app.handle_key(ord("e"))
        assert app.pipeline.smoother.manual_held
        app.handle_key(ord("e"))
        assert not app.pipeline.smoother.manual_held

        app.handle_key(ord("r"))
        assert app.event_logger.resets == 1

        app.handle_key(ord("q"))
        assert not app._running
        app.stop()

    def test_run_feeds_render_sink(self, app_config):
        frames = []
        app = HandMorphApp(app_config, use_camera=False, render_sink=frames.append)

        app.run(duration=0.1)

        assert frames
        assert all(frame.mode == AUTONOMOUS for frame in frames)
        assert all(frame.progress == 0.0 for frame in frames)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
