"""
Progress Smoother
==================

Turns the discrete assemble/disperse intent into the continuous scalar the
renderer interpolates with. Runs on the render loop, independently of how
often detection results arrive.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from handmorph.recognition.aggregator import GestureSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SmootherConfig:
    """Progress smoothing settings."""
    smoothing_factor: float = 0.05   # Fraction of remaining distance covered per tick
    hold_on_loss: bool = False       # Keep last intent when the hand disappears
    settle_tolerance: float = 1e-3

    @classmethod
    def from_dict(cls, config: dict) -> "SmootherConfig":
        """Create config from dictionary."""
        return cls(
            smoothing_factor=config.get("smoothing_factor", 0.05),
            hold_on_loss=config.get("hold_on_loss", False),
            settle_tolerance=config.get("settle_tolerance", 1e-3),
        )


class ProgressSmoother:
    """
    First-order exponential low-pass from `target` (0 or 1) to `rendered`.

    The update is a pure decay toward the target, so `rendered` never
    overshoots and stays within [0, 1]. Targets come from three sources:
    the latest gesture, a manual press-and-hold override, and reset.

    Example:
        >>> smoother = ProgressSmoother()
        >>> smoother.apply_gesture(snapshot)
        >>> while running:
        ...     renderer.set_progress(smoother.tick())
    """

    def __init__(self, config: Optional[SmootherConfig] = None):
        self.config = config or SmootherConfig()
        if not 0.0 < self.config.smoothing_factor <= 1.0:
            raise ValueError(
                f"smoothing_factor must be in (0, 1], got {self.config.smoothing_factor}")
        self._target = 0.0
        self._rendered = 0.0
        self._manual_held = False
        # Target and hold are written from the detection thread and from input handlers
        self._lock = threading.Lock()

    @property
    def target(self) -> float:
        return self._target

    @property
    def rendered(self) -> float:
        return self._rendered

    @property
    def manual_held(self) -> bool:
        return self._manual_held

    def apply_gesture(self, snapshot: GestureSnapshot) -> float:
        """Derive the target from the latest gesture. Ignored while manually held."""
        if snapshot.hand_detected:
            desired = 1.0 if snapshot.is_open else 0.0
        elif self.config.hold_on_loss:
            desired = None
        else:
            desired = 0.0

        # The hold check and the write happen under one lock acquisition
        with self._lock:
            if not self._manual_held and desired is not None:
                self._target = desired
            return self._target

    def set_target(self, value: float) -> None:
        """Set the target directly, bypassing gesture classification."""
        with self._lock:
            self._target = 1.0 if value >= 0.5 else 0.0

    def press(self) -> None:
        """Begin manual hold: disperse until released."""
        with self._lock:
            if not self._manual_held:
                logger.debug("Manual override pressed")
            self._manual_held = True
            self._target = 1.0

    def release(self) -> None:
        """End manual hold and fall back to assembled."""
        with self._lock:
            if self._manual_held:
                logger.debug("Manual override released")
            self._manual_held = False
            self._target = 0.0

    def reset(self) -> None:
        """Force target to 0; the rendered value converges on its own."""
        with self._lock:
            self._manual_held = False
            self._target = 0.0

    def tick(self) -> float:
        """Advance one render tick and return the rendered progress."""
        with self._lock:
            target = self._target
        self._rendered += (target - self._rendered) * self.config.smoothing_factor
        self._rendered = min(1.0, max(0.0, self._rendered))
        return self._rendered

    def is_settled(self, tolerance: Optional[float] = None) -> bool:
        """True once `rendered` is within tolerance of the target."""
        tolerance = self.config.settle_tolerance if tolerance is None else tolerance
        return abs(self._target - self._rendered) <= tolerance
