"""
Camera Rig Controller
======================

Maps the gesture snapshot onto camera position. Two modes, chosen afresh
every tick from `hand_detected` alone:

- manual: zoom drives distance, hand position drives an orbit offset,
  eased quickly (0.05 per tick)
- autonomous: a slow sinusoidal orbit around the default viewpoint,
  eased slowly (0.02 per tick) so hand-overs never snap

The look-at target is always the scene centre.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from handmorph.recognition.aggregator import GestureSnapshot
from handmorph.recognition.calibration import neutral_zoom_for

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]

SCENE_CENTER: Vector3 = (0.0, 0.0, 0.0)

MANUAL = "manual"
AUTONOMOUS = "autonomous"


@dataclass(frozen=True)
class CameraPose:
    """Camera position plus fixed look-at target."""
    position: Vector3
    look_at: Vector3 = SCENE_CENTER


@dataclass
class CameraRigConfig:
    """Camera rig geometry and easing constants."""
    default_position: Vector3 = (0.0, 2.0, 24.0)
    far_distance: float = 55.0
    close_distance: float = 10.0
    orbit_x: float = 15.0
    orbit_y: float = 8.0
    manual_ease: float = 0.05
    idle_ease: float = 0.02
    idle_amplitude: float = 20.0
    idle_frequency: float = 0.1   # rad/s

    @classmethod
    def from_dict(cls, config: dict) -> "CameraRigConfig":
        """Create config from dictionary."""
        default_position = tuple(config.get("default_position", [0.0, 2.0, 24.0]))
        if len(default_position) != 3:
            raise ValueError(f"default_position needs x, y, z; got {list(default_position)}")
        return cls(
            default_position=default_position,
            far_distance=config.get("far_distance", 55.0),
            close_distance=config.get("close_distance", 10.0),
            orbit_x=config.get("orbit_x", 15.0),
            orbit_y=config.get("orbit_y", 8.0),
            manual_ease=config.get("manual_ease", 0.05),
            idle_ease=config.get("idle_ease", 0.02),
            idle_amplitude=config.get("idle_amplitude", 20.0),
            idle_frequency=config.get("idle_frequency", 0.1),
        )

    @property
    def neutral_zoom(self) -> float:
        """Zoom value that places the camera at its default distance."""
        return neutral_zoom_for(self.default_position[2], self.far_distance, self.close_distance)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def manual_target(snapshot: GestureSnapshot, config: CameraRigConfig) -> Vector3:
    """Hand-driven target position."""
    x, y = snapshot.position
    return (
        x * config.orbit_x,
        config.default_position[1] + y * config.orbit_y,
        lerp(config.far_distance, config.close_distance, snapshot.zoom),
    )


def autonomous_target(elapsed: float, config: CameraRigConfig) -> Vector3:
    """Idle orbit target at `elapsed` seconds."""
    return (
        math.sin(elapsed * config.idle_frequency) * config.idle_amplitude,
        config.default_position[1],
        config.default_position[2],
    )


def next_camera_position(
    previous: Vector3,
    snapshot: GestureSnapshot,
    elapsed: float,
    config: Optional[CameraRigConfig] = None,
) -> Vector3:
    """One render tick of camera easing. Pure."""
    config = config or CameraRigConfig()
    if snapshot.hand_detected:
        target, ease = manual_target(snapshot, config), config.manual_ease
    else:
        target, ease = autonomous_target(elapsed, config), config.idle_ease
    return tuple(lerp(p, t, ease) for p, t in zip(previous, target))


class CameraRig:
    """
    Holds the current camera position between render ticks.

    Example:
        >>> rig = CameraRig()
        >>> pose = rig.update(snapshot, elapsed=clock.elapsed)
        >>> renderer.camera.position = pose.position
        >>> renderer.camera.look_at(pose.look_at)
    """

    def __init__(self, config: Optional[CameraRigConfig] = None):
        self.config = config or CameraRigConfig()
        self._position: Vector3 = tuple(self.config.default_position)
        self._mode = AUTONOMOUS

    @property
    def position(self) -> Vector3:
        return self._position

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def pose(self) -> CameraPose:
        return CameraPose(position=self._position)

    def update(self, snapshot: GestureSnapshot, elapsed: float) -> CameraPose:
        """Advance one render tick."""
        mode = MANUAL if snapshot.hand_detected else AUTONOMOUS
        if mode != self._mode:
            logger.debug("Camera rig mode: %s -> %s", self._mode, mode)
            self._mode = mode
        self._position = next_camera_position(self._position, snapshot, elapsed, self.config)
        return CameraPose(position=self._position)
