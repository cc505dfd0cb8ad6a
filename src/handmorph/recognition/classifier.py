"""
Landmark Classifier
====================

Rule-based open/closed and pinch-OK recognition from hand landmark geometry.

All thresholds are multiples of the palm scale (wrist to middle-finger MCP),
so the same pose classifies identically whether the hand is near or far
from the camera. Comparisons are strict: a measurement exactly on a
threshold resolves to ``False``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from handmorph.detection.hand_detector import HandLandmarks, LandmarkIndex

logger = logging.getLogger(__name__)

# Non-thumb fingertips used for the openness average
FINGERTIPS = (
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)


@dataclass(frozen=True)
class HandMeasurement:
    """Per-frame classification result."""
    is_open: bool
    is_grab: bool
    scale: float


@dataclass
class ClassifierConfig:
    """Thresholds, expressed as multiples of palm scale."""
    open_ratio: float = 1.5
    pinch_ratio: float = 0.5
    extended_ratio: float = 1.0

    @classmethod
    def from_dict(cls, config: dict) -> "ClassifierConfig":
        """Create config from dictionary."""
        return cls(
            open_ratio=config.get("open_ratio", 1.5),
            pinch_ratio=config.get("pinch_ratio", 0.5),
            extended_ratio=config.get("extended_ratio", 1.0),
        )


def palm_scale(points: np.ndarray) -> float:
    """Wrist to middle-finger MCP distance."""
    return float(np.linalg.norm(points[LandmarkIndex.MIDDLE_MCP] - points[LandmarkIndex.WRIST]))


def classify(hand: HandLandmarks, config: Optional[ClassifierConfig] = None) -> Optional[HandMeasurement]:
    """
    Classify a single hand.

    Args:
        hand: Detector output (21 landmarks)
        config: Threshold ratios

    Returns:
        HandMeasurement, or None when the landmark set is partial or
        degenerate (the caller treats that as "no hand").
    """
    config = config or ClassifierConfig()

    if not hand.is_complete:
        logger.debug("Rejecting partial landmark set (%d points)", len(hand.landmarks))
        return None

    points = hand.to_numpy()
    wrist = points[LandmarkIndex.WRIST]
    scale = palm_scale(points)
    if scale <= 0.0:
        return None

    def wrist_distance(index: LandmarkIndex) -> float:
        return float(np.linalg.norm(points[index] - wrist))

    # Closed fingers collapse toward the palm; open ones reach ~2x palm size
    avg_tip_distance = float(np.mean([wrist_distance(tip) for tip in FINGERTIPS]))
    is_open = avg_tip_distance > scale * config.open_ratio

    # Pinch with middle and ring extended, so a fist does not count
    pinch_distance = float(np.linalg.norm(points[LandmarkIndex.THUMB_TIP] - points[LandmarkIndex.INDEX_TIP]))
    is_pinching = pinch_distance < scale * config.pinch_ratio
    extended_limit = scale * config.extended_ratio
    is_grab = (
        is_pinching
        and wrist_distance(LandmarkIndex.MIDDLE_TIP) > extended_limit
        and wrist_distance(LandmarkIndex.RING_TIP) > extended_limit
    )

    return HandMeasurement(is_open=bool(is_open), is_grab=bool(is_grab), scale=scale)
