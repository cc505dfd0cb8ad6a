"""
Gesture-to-control pipeline.

Two independent loops share this object:

    detection loop:  frame -> HandDetector -> aggregate() -> latest snapshot
                                                          -> smoother target
    render loop:     smoother.tick() + camera rig update -> RenderFrame

Each piece of shared state has a single writer: the detection loop owns the
snapshot and calibration state, the render loop owns the rendered progress
and camera position. The render loop always re-uses the most recent
snapshot, so it never waits on detection.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from handmorph.control.camera_rig import CameraPose, CameraRig, CameraRigConfig
from handmorph.control.progress import ProgressSmoother, SmootherConfig
from handmorph.core.events import EventBus, Events
from handmorph.detection.hand_detector import HandLandmarks
from handmorph.recognition.aggregator import (
    AggregatorConfig,
    GestureSnapshot,
    NEUTRAL_SNAPSHOT,
    aggregate,
)
from handmorph.recognition.calibration import CalibrationConfig, CalibrationState
from handmorph.recognition.classifier import ClassifierConfig

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for every pipeline stage."""
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    smoother: SmootherConfig = field(default_factory=SmootherConfig)
    camera_rig: CameraRigConfig = field(default_factory=CameraRigConfig)

    @classmethod
    def from_dict(cls, config: dict) -> "PipelineConfig":
        """Create config from the merged application config dictionary."""
        camera_rig = CameraRigConfig.from_dict(config.get("camera_rig", {}))
        return cls(
            classifier=ClassifierConfig.from_dict(config.get("classifier", {})),
            calibration=CalibrationConfig.from_dict(
                config.get("calibration", {}), neutral_zoom=camera_rig.neutral_zoom),
            smoother=SmootherConfig.from_dict(config.get("smoother", {})),
            camera_rig=camera_rig,
        )


@dataclass(frozen=True)
class RenderFrame:
    """Everything the renderer consumes on one render tick."""
    progress: float
    snapshot: GestureSnapshot
    pose: CameraPose
    mode: str
    reset_generation: int
    manual_held: bool = False


class GesturePipeline:
    """
    Detection and render steps of the gesture-to-control pipeline.

    The detector is optional: without one (or when it fails to start) the
    pipeline runs degraded, with a permanently neutral snapshot and only
    the manual override driving progress.

    Example:
        >>> pipeline = GesturePipeline(PipelineConfig(), detector=HandDetector())
        >>> pipeline.initialize()
        >>> pipeline.process_frame(rgb_frame)      # detection loop
        >>> frame = pipeline.render_tick()         # render loop
        >>> renderer.draw(frame.progress, frame.pose)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        detector=None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or PipelineConfig()
        self._detector = detector
        self._bus = event_bus or EventBus()
        self._clock = clock
        self._start_time = clock()

        self._aggregator_config = AggregatorConfig(
            classifier=self.config.classifier,
            calibration=self.config.calibration,
        )
        self._smoother = ProgressSmoother(self.config.smoother)
        self._rig = CameraRig(self.config.camera_rig)

        # Written by the detection loop only
        self._calibration = CalibrationState()
        self._snapshot = NEUTRAL_SNAPSHOT
        self._last_hand: Optional[HandLandmarks] = None
        self._detection_frames = 0
        self._failed_frames = 0

        self._reset_generation = 0
        self._degraded = detector is None
        self._degraded_reason = "no detector" if detector is None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Start the detector. False means the pipeline runs degraded."""
        if self._detector is None:
            self.mark_degraded("no detector")
            return False
        if not self._detector.start():
            self.mark_degraded("detector failed to initialize")
            return False
        logger.info("Gesture pipeline ready")
        return True

    def mark_degraded(self, reason: str) -> None:
        """Stop using gestures; only manual input drives progress from now on."""
        if not self._degraded or self._degraded_reason != reason:
            logger.warning("Running without hand tracking: %s", reason)
        self._degraded = True
        self._degraded_reason = reason
        self._snapshot = NEUTRAL_SNAPSHOT
        self._last_hand = None
        self._smoother.apply_gesture(NEUTRAL_SNAPSHOT)
        self._bus.emit(Events.DEGRADED, reason=reason)

    def shutdown(self) -> None:
        if self._detector is not None:
            self._detector.stop()

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def degraded_reason(self) -> Optional[str]:
        return self._degraded_reason

    # ------------------------------------------------------------------
    # Detection loop
    # ------------------------------------------------------------------

    def process_frame(self, rgb_frame: np.ndarray, timestamp_ms: Optional[int] = None) -> GestureSnapshot:
        """Detect and aggregate one video frame."""
        if self._degraded:
            return NEUTRAL_SNAPSHOT

        try:
            hand = self._detector.detect(rgb_frame, timestamp_ms)
        except Exception as e:
            # One bad frame must not stop the loops; it simply counts as no hand
            self._failed_frames += 1
            logger.warning("Hand detection failed on frame %d: %s", self._detection_frames, e)
            hand = None

        return self.detection_tick(hand)

    def detection_tick(self, hand: Optional[HandLandmarks]) -> GestureSnapshot:
        """Aggregate one detector result and publish it as the latest snapshot."""
        previous_snapshot = self._snapshot
        previous_state = self._calibration

        snapshot, state = aggregate(hand, previous_state, self._aggregator_config)

        self._calibration = state
        self._snapshot = snapshot
        self._last_hand = hand if snapshot.hand_detected else None
        self._detection_frames += 1
        self._smoother.apply_gesture(snapshot)

        self._emit_transitions(previous_snapshot, snapshot, previous_state, state)
        return snapshot

    def _emit_transitions(self, before: GestureSnapshot, after: GestureSnapshot,
                          state_before: CalibrationState, state_after: CalibrationState) -> None:
        if after.hand_detected and not before.hand_detected:
            self._bus.emit(Events.HAND_ACQUIRED, snapshot=after)
        elif before.hand_detected and not after.hand_detected:
            self._bus.emit(Events.HAND_LOST, snapshot=after)

        if after.is_grab and not before.is_grab:
            self._bus.emit(Events.GRAB_STARTED, snapshot=after)
        elif before.is_grab and not after.is_grab:
            self._bus.emit(Events.GRAB_ENDED, snapshot=after)

        if state_after.baseline_scale is not None and state_before.baseline_scale is None:
            self._bus.emit(Events.CALIBRATED, baseline_scale=state_after.baseline_scale)
        elif state_after.baseline_scale is None and state_before.baseline_scale is not None:
            self._bus.emit(Events.CALIBRATION_CLEARED, missed_frames=state_after.miss_frame_count)

    # ------------------------------------------------------------------
    # Render loop
    # ------------------------------------------------------------------

    def render_tick(self, elapsed: Optional[float] = None) -> RenderFrame:
        """Advance smoothing and camera easing by one display refresh."""
        if elapsed is None:
            elapsed = self.elapsed

        snapshot = self._snapshot
        progress = self._smoother.tick()

        previous_mode = self._rig.mode
        pose = self._rig.update(snapshot, elapsed)
        if self._rig.mode != previous_mode:
            self._bus.emit(Events.MODE_CHANGED, mode=self._rig.mode, previous=previous_mode)

        return RenderFrame(
            progress=progress,
            snapshot=snapshot,
            pose=pose,
            mode=self._rig.mode,
            reset_generation=self._reset_generation,
            manual_held=self._smoother.manual_held,
        )

    # ------------------------------------------------------------------
    # External inputs
    # ------------------------------------------------------------------

    def press_manual(self) -> None:
        """Press-and-hold "disperse" control."""
        self._smoother.press()
        self._bus.emit(Events.MANUAL_OVERRIDE, held=True)

    def release_manual(self) -> None:
        self._smoother.release()
        self._bus.emit(Events.MANUAL_OVERRIDE, held=False)

    def reset(self, reseed: bool = True) -> None:
        """Force the target back to assembled; optionally ask for a new layout."""
        self._smoother.reset()
        if reseed:
            self._reset_generation += 1
        self._bus.emit(Events.RESET, generation=self._reset_generation, reseed=reseed)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def snapshot(self) -> GestureSnapshot:
        return self._snapshot

    @property
    def last_hand(self) -> Optional[HandLandmarks]:
        return self._last_hand

    @property
    def calibration_state(self) -> CalibrationState:
        return self._calibration

    @property
    def smoother(self) -> ProgressSmoother:
        return self._smoother

    @property
    def camera_rig(self) -> CameraRig:
        return self._rig

    @property
    def elapsed(self) -> float:
        """Seconds since the pipeline was created."""
        return self._clock() - self._start_time

    @property
    def detection_frames(self) -> int:
        return self._detection_frames

    @property
    def failed_frames(self) -> int:
        return self._failed_frames
