"""
Gesture Aggregator
===================

Combines classification, relative zoom and hand position into one
immutable `GestureSnapshot` per detection frame.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from handmorph.detection.hand_detector import HandLandmarks, LandmarkIndex
from handmorph.recognition.calibration import CalibrationConfig, CalibrationState, update_zoom
from handmorph.recognition.classifier import ClassifierConfig, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GestureSnapshot:
    """
    Per-frame gesture state consumed by the smoother and the camera rig.

    When `hand_detected` is False every other field holds its neutral value.
    """
    hand_detected: bool = False
    is_open: bool = False
    is_grab: bool = False
    position: Tuple[float, float] = (0.0, 0.0)  # mirrored, [-1, 1] on both axes
    zoom: float = 0.0                           # 0 = far, 1 = close

    @staticmethod
    def neutral() -> "GestureSnapshot":
        return NEUTRAL_SNAPSHOT

    @property
    def status(self) -> str:
        """Short human-readable label for overlays."""
        if not self.hand_detected:
            return "AWAITING GESTURE"
        if self.is_grab:
            return "PHOTO VIEW"
        if self.is_open:
            return "UNLEASHED"
        return "FORMING"


NEUTRAL_SNAPSHOT = GestureSnapshot()


@dataclass
class AggregatorConfig:
    """Bundles the settings the aggregator needs."""
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)


def to_signed(value: float) -> float:
    """Map [0, 1] onto [-1, 1]."""
    return value * 2.0 - 1.0


def aggregate(
    hand: Optional[HandLandmarks],
    state: CalibrationState,
    config: Optional[AggregatorConfig] = None,
) -> Tuple[GestureSnapshot, CalibrationState]:
    """
    Build the snapshot for one detection frame.

    Args:
        hand: Detector output, or None when no hand was found
        state: Calibration state from the previous frame

    Returns:
        (snapshot, new_state)
    """
    config = config or AggregatorConfig()

    measurement = classify(hand, config.classifier) if hand is not None else None
    if measurement is None:
        _, state = update_zoom(None, state, config.calibration)
        return NEUTRAL_SNAPSHOT, state

    zoom, state = update_zoom(measurement.scale, state, config.calibration)

    anchor = hand.get(LandmarkIndex.MIDDLE_MCP)
    position = (to_signed(1.0 - anchor.x), to_signed(anchor.y))

    snapshot = GestureSnapshot(
        hand_detected=True,
        is_open=measurement.is_open,
        is_grab=measurement.is_grab,
        position=position,
        zoom=zoom,
    )
    return snapshot, state
