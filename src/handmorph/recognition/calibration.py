"""
Relative Zoom Calibration
==========================

Absolute palm size is not a usable distance proxy (it depends on the
user's hand and the camera's field of view), so zoom is measured relative
to a baseline captured the first time a hand is seen. After a sustained
loss of detection the baseline is dropped, and the next hand starts a
fresh session.

State is an immutable `CalibrationState`; every update returns a new one.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationState:
    """Floating baseline and loss debounce counter."""
    baseline_scale: Optional[float] = None
    miss_frame_count: int = 0

    @property
    def is_calibrated(self) -> bool:
        return self.baseline_scale is not None


def neutral_zoom_for(default_distance: float, far: float, close: float) -> float:
    """Fraction of the [far, close] range at which the camera sits at `default_distance`."""
    if far == close:
        return 0.0
    return min(1.0, max(0.0, (far - default_distance) / (far - close)))


@dataclass
class CalibrationConfig:
    """Zoom calibration settings."""
    sensitivity: float = 2.5
    reset_threshold: int = 30   # Missed frames before the baseline is dropped
    neutral_zoom: float = neutral_zoom_for(24.0, 55.0, 10.0)

    @classmethod
    def from_dict(cls, config: dict, neutral_zoom: Optional[float] = None) -> "CalibrationConfig":
        """
        Create config from dictionary.

        `neutral_zoom` from the dict wins; otherwise the value derived from
        the camera rig geometry is used when given.
        """
        default_neutral = neutral_zoom if neutral_zoom is not None else cls.neutral_zoom
        return cls(
            sensitivity=config.get("sensitivity", 2.5),
            reset_threshold=config.get("reset_threshold", 30),
            neutral_zoom=config.get("neutral_zoom", default_neutral),
        )


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def register_miss(state: CalibrationState, config: CalibrationConfig) -> CalibrationState:
    """Advance the loss counter; drop the baseline once it exceeds the threshold."""
    misses = state.miss_frame_count + 1
    baseline = state.baseline_scale
    if baseline is not None and misses > config.reset_threshold:
        logger.debug("Hand lost for %d frames, clearing zoom baseline", misses)
        baseline = None
    return CalibrationState(baseline_scale=baseline, miss_frame_count=misses)


def update_zoom(
    scale: Optional[float],
    state: CalibrationState,
    config: Optional[CalibrationConfig] = None,
) -> Tuple[float, CalibrationState]:
    """
    Convert palm scale into a zoom factor in [0, 1].

    Must be called once per detection frame: with the measured scale when a
    hand is present, with ``None`` when it is not.

    Returns:
        (zoom, new_state). Zoom is 0.0 on frames without a hand.
    """
    config = config or CalibrationConfig()

    if scale is None:
        return 0.0, register_miss(state, config)

    state = replace(state, miss_frame_count=0)
    if state.baseline_scale is None:
        state = replace(state, baseline_scale=scale)
        logger.debug("Zoom baseline set to %.4f", scale)

    delta = scale - state.baseline_scale
    zoom = clamp01(config.neutral_zoom + delta * config.sensitivity)
    return zoom, state
