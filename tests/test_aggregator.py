"""
Tests for the Gesture Aggregator
=================================
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from handmorph.recognition.aggregator import (
    AggregatorConfig,
    GestureSnapshot,
    NEUTRAL_SNAPSHOT,
    aggregate,
)
from handmorph.recognition.calibration import CalibrationConfig, CalibrationState
from synthetic_hands import make_hand


@pytest.fixture
def config():
    return AggregatorConfig(calibration=CalibrationConfig(neutral_zoom=0.68))


class TestNeutralSnapshot:
    """No hand means fixed neutral values."""

    def test_neutral_values(self):
        snapshot = GestureSnapshot.neutral()

        assert snapshot.hand_detected is False
        assert snapshot.is_open is False
        assert snapshot.is_grab is False
        assert snapshot.position == (0.0, 0.0)
        assert snapshot.zoom == 0.0

    def test_absent_hand(self, config):
        snapshot, state = aggregate(None, CalibrationState(baseline_scale=0.1), config)

        assert snapshot == NEUTRAL_SNAPSHOT
        assert state.miss_frame_count == 1

    def test_malformed_hand_counts_as_absent(self, config):
        hand = make_hand("open")
        hand.landmarks = hand.landmarks[:10]

        snapshot, state = aggregate(hand, CalibrationState(), config)

        assert snapshot == NEUTRAL_SNAPSHOT
        assert state.miss_frame_count == 1

    def test_snapshot_is_immutable(self):
        with pytest.raises(AttributeError):
            NEUTRAL_SNAPSHOT.zoom = 1.0


class TestAggregate:
    """Test suite for detected-hand snapshots."""

    def test_open_hand_snapshot(self, config):
        snapshot, state = aggregate(make_hand("open"), CalibrationState(), config)

        assert snapshot.hand_detected is True
        assert snapshot.is_open is True
        assert snapshot.is_grab is False
        assert snapshot.zoom == pytest.approx(0.68)
        assert state.baseline_scale == pytest.approx(0.1)

    def test_position_is_mirrored(self, config):
        """Hand on the image's left maps to positive x (mirror view)."""
        # Middle MCP lands at (0.3, 0.7) in image space
        snapshot, _ = aggregate(make_hand("fist", origin=(0.3, 0.8)), CalibrationState(), config)

        x, y = snapshot.position
        assert x == pytest.approx(0.4)
        assert y == pytest.approx(0.4)

    def test_centered_hand(self, config):
        snapshot, _ = aggregate(make_hand("fist", origin=(0.5, 0.6)), CalibrationState(), config)

        assert snapshot.position == pytest.approx((0.0, 0.0))

    def test_presence_resets_miss_counter(self, config):
        state = CalibrationState(baseline_scale=0.1, miss_frame_count=20)
        _, state = aggregate(make_hand("fist"), state, config)

        assert state.miss_frame_count == 0

    @pytest.mark.parametrize("pose,expected", [
        ("open", "UNLEASHED"),
        ("fist", "FORMING"),
        ("ok", "PHOTO VIEW"),
    ])
    def test_status_label(self, config, pose, expected):
        snapshot, _ = aggregate(make_hand(pose), CalibrationState(), config)

        assert snapshot.status == expected

    def test_status_without_hand(self):
        assert NEUTRAL_SNAPSHOT.status == "AWAITING GESTURE"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
