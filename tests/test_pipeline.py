"""
Tests for the Gesture Pipeline
===============================
"""

import sys
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from handmorph.control.camera_rig import AUTONOMOUS, MANUAL
from handmorph.core.events import EventBus, Events
from handmorph.core.pipeline import GesturePipeline, PipelineConfig
from handmorph.recognition.aggregator import NEUTRAL_SNAPSHOT
from synthetic_hands import make_hand

BLANK = np.zeros((48, 64, 3), dtype=np.uint8)


def recorder(bus, *events):
    """Collect (event, kwargs) pairs for the given event names."""
    seen = []
    for name in events:
        bus.subscribe(name, lambda _name=name, **kw: seen.append((_name, kw)))
    return seen


@pytest.fixture
def detector():
    mock = Mock()
    mock.start.return_value = True
    mock.detect.return_value = None
    return mock


@pytest.fixture
def pipeline(detector):
    p = GesturePipeline(PipelineConfig(), detector=detector, clock=lambda: 0.0)
    assert p.initialize()
    return p


class TestDetectionTick:
    """Test suite for the detection side of the pipeline."""

    def test_fist_absence_fresh_hand(self, pipeline):
        """Fist, then a long absence, then a new open hand at another distance."""
        targets = []
        for _ in range(40):
            pipeline.detection_tick(make_hand("fist"))
            targets.append(pipeline.smoother.target)
        assert targets == [0.0] * 40

        targets = []
        for _ in range(40):
            pipeline.detection_tick(None)
            targets.append(pipeline.smoother.target)
        assert targets == [0.0] * 40
        assert not pipeline.calibration_state.is_calibrated

        snapshot = pipeline.detection_tick(make_hand("open", scale=0.15))

        assert pipeline.smoother.target == 1.0
        assert snapshot.zoom == pytest.approx(pipeline.config.calibration.neutral_zoom)
        assert pipeline.calibration_state.baseline_scale == pytest.approx(0.15)

    def test_process_frame_uses_detector(self, pipeline, detector):
        detector.detect.return_value = make_hand("open")

        snapshot = pipeline.process_frame(BLANK, timestamp_ms=33)

        detector.detect.assert_called_once_with(BLANK, 33)
        assert snapshot.hand_detected
        assert pipeline.snapshot is snapshot
        assert pipeline.last_hand is detector.detect.return_value
        assert pipeline.detection_frames == 1

    def test_detector_error_counts_as_absent(self, pipeline, detector):
        pipeline.detection_tick(make_hand("open"))
        detector.detect.side_effect = RuntimeError("inference failed")

        snapshot = pipeline.process_frame(BLANK)

        assert snapshot == NEUTRAL_SNAPSHOT
        assert pipeline.failed_frames == 1
        assert pipeline.last_hand is None
        assert pipeline.smoother.target == 0.0

    def test_transition_events(self, pipeline):
        seen = recorder(pipeline.event_bus, Events.HAND_ACQUIRED, Events.HAND_LOST,
                        Events.GRAB_STARTED, Events.GRAB_ENDED, Events.CALIBRATED)

        pipeline.detection_tick(make_hand("open"))
        pipeline.detection_tick(make_hand("ok"))
        pipeline.detection_tick(make_hand("ok"))
        pipeline.detection_tick(None)

        names = [name for name, _ in seen]
        assert names == [
            Events.HAND_ACQUIRED,
            Events.CALIBRATED,
            Events.GRAB_STARTED,
            Events.HAND_LOST,
            Events.GRAB_ENDED,
        ]

    def test_calibration_cleared_event(self, pipeline):
        seen = recorder(pipeline.event_bus, Events.CALIBRATION_CLEARED)
        pipeline.detection_tick(make_hand("open"))
        threshold = pipeline.config.calibration.reset_threshold

        for _ in range(threshold):
            pipeline.detection_tick(None)
        assert seen == []

        pipeline.detection_tick(None)
        assert seen == [(Events.CALIBRATION_CLEARED, {"missed_frames": threshold + 1})]


class TestRenderTick:
    """Test suite for the render side of the pipeline."""

    def test_render_reuses_latest_snapshot(self, pipeline):
        """Many render ticks per detection frame all see the same snapshot."""
        snapshot = pipeline.detection_tick(make_hand("open"))

        frames = [pipeline.render_tick(elapsed=i / 60) for i in range(5)]

        assert all(frame.snapshot is snapshot for frame in frames)
        assert all(frame.mode == MANUAL for frame in frames)
        progress = [frame.progress for frame in frames]
        assert progress == sorted(progress)
        assert progress[0] == pytest.approx(0.05)

    def test_mode_changed_event(self, pipeline):
        seen = recorder(pipeline.event_bus, Events.MODE_CHANGED)

        pipeline.render_tick(0.0)
        pipeline.detection_tick(make_hand("fist"))
        pipeline.render_tick(0.1)
        pipeline.detection_tick(None)
        pipeline.render_tick(0.2)

        assert seen == [
            (Events.MODE_CHANGED, {"mode": MANUAL, "previous": AUTONOMOUS}),
            (Events.MODE_CHANGED, {"mode": AUTONOMOUS, "previous": MANUAL}),
        ]

    def test_elapsed_from_clock(self, detector):
        now = [100.0]
        pipeline = GesturePipeline(detector=detector, clock=lambda: now[0])
        now[0] = 112.5

        assert pipeline.elapsed == pytest.approx(12.5)


class TestExternalInputs:
    """Manual override and reset."""

    def test_manual_hold_beats_gestures(self, pipeline):
        pipeline.press_manual()
        pipeline.detection_tick(make_hand("fist"))

        frame = pipeline.render_tick(0.0)

        assert frame.manual_held
        assert pipeline.smoother.target == 1.0

        pipeline.release_manual()
        assert pipeline.smoother.target == 0.0

    def test_press_racing_detection_is_kept(self, pipeline):
        """A key press landing inside a gesture update keeps the hold."""
        class PressingSnapshot:
            is_open = False

            @property
            def hand_detected(self):
                pipeline.press_manual()
                return True

        pipeline.smoother.apply_gesture(PressingSnapshot())
        for _ in range(5):
            pipeline.detection_tick(make_hand("fist"))

        frame = pipeline.render_tick(0.0)
        assert frame.manual_held
        assert pipeline.smoother.target == 1.0

    def test_reset_bumps_generation(self, pipeline):
        seen = recorder(pipeline.event_bus, Events.RESET)

        pipeline.reset()
        pipeline.reset(reseed=False)

        assert pipeline.render_tick(0.0).reset_generation == 1
        assert seen == [
            (Events.RESET, {"generation": 1, "reseed": True}),
            (Events.RESET, {"generation": 1, "reseed": False}),
        ]


class TestDegradedMode:
    """Without hand tracking only the manual path works."""

    def test_detector_init_failure(self, detector):
        detector.start.return_value = False
        pipeline = GesturePipeline(detector=detector)

        assert pipeline.initialize() is False
        assert pipeline.degraded

        assert pipeline.process_frame(BLANK) == NEUTRAL_SNAPSHOT
        detector.detect.assert_not_called()

    def test_no_detector(self):
        bus = EventBus()
        seen = recorder(bus, Events.DEGRADED)
        pipeline = GesturePipeline(event_bus=bus)

        assert pipeline.initialize() is False
        assert pipeline.degraded_reason == "no detector"
        assert seen == [(Events.DEGRADED, {"reason": "no detector"})]

    def test_manual_control_while_degraded(self):
        pipeline = GesturePipeline(clock=lambda: 0.0)
        pipeline.initialize()
        pipeline.press_manual()

        for _ in range(200):
            frame = pipeline.render_tick()

        assert frame.progress == pytest.approx(1.0, abs=1e-3)
        assert frame.mode == AUTONOMOUS

    def test_degrading_drops_current_hand(self, pipeline):
        pipeline.detection_tick(make_hand("open"))

        pipeline.mark_degraded("camera lost")

        assert pipeline.snapshot == NEUTRAL_SNAPSHOT
        assert pipeline.smoother.target == 0.0


class TestPipelineConfig:
    def test_neutral_zoom_follows_rig(self):
        config = PipelineConfig.from_dict({"camera_rig": {"default_position": [0, 2, 40]}})

        assert config.calibration.neutral_zoom == pytest.approx(15.0 / 45.0)

    def test_neutral_zoom_override(self):
        config = PipelineConfig.from_dict({"calibration": {"neutral_zoom": 0.68}})

        assert config.calibration.neutral_zoom == 0.68

    def test_defaults(self):
        config = PipelineConfig.from_dict({})

        assert config.smoother.smoothing_factor == 0.05
        assert config.calibration.reset_threshold == 30
        assert config.camera_rig.close_distance == 10.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
