"""
Preview Overlay
================

Debug window for the camera feed: hand skeleton, gesture status, progress
bar and camera pose. The real scene renderer is an external consumer of
`RenderFrame`; this only helps while tuning gestures.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from handmorph.core.pipeline import RenderFrame
from handmorph.detection.hand_detector import HandDetector, HandLandmarks, LandmarkIndex

FINGERTIPS = (4, 8, 12, 16, 20)


@dataclass
class VisualizerConfig:
    """Preview settings."""
    show_landmarks: bool = True
    show_status: bool = True
    show_progress: bool = True
    show_pose: bool = True
    show_rates: bool = True
    canvas_size: Tuple[int, int] = (640, 480)   # used when there is no camera frame

    # Colors (BGR format)
    landmark_color: Tuple[int, int, int] = (0, 255, 0)
    connection_color: Tuple[int, int, int] = (255, 255, 255)
    text_color: Tuple[int, int, int] = (0, 255, 255)
    active_color: Tuple[int, int, int] = (79, 223, 255)   # gold
    idle_color: Tuple[int, int, int] = (128, 128, 128)
    bar_color: Tuple[int, int, int] = (72, 122, 16)       # emerald

    font_scale: float = 0.6
    font_thickness: int = 2

    @classmethod
    def from_dict(cls, config: dict) -> "VisualizerConfig":
        """Create config from dictionary."""
        colors = config.get("colors", {})
        return cls(
            show_landmarks=config.get("show_landmarks", True),
            show_status=config.get("show_status", True),
            show_progress=config.get("show_progress", True),
            show_pose=config.get("show_pose", True),
            show_rates=config.get("show_rates", True),
            canvas_size=tuple(config.get("canvas_size", [640, 480])),
            landmark_color=tuple(colors.get("landmarks", [0, 255, 0])),
            connection_color=tuple(colors.get("connections", [255, 255, 255])),
            text_color=tuple(colors.get("text", [0, 255, 255])),
        )


class Visualizer:
    """
    Draws pipeline state on top of a BGR frame.

    Example:
        >>> viz = Visualizer()
        >>> image = viz.compose(frame.image, render_frame, hand=pipeline.last_hand)
        >>> cv2.imshow("handmorph", image)
    """

    def __init__(self, config: Optional[VisualizerConfig] = None):
        self.config = config or VisualizerConfig()
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def blank_canvas(self) -> np.ndarray:
        width, height = self.config.canvas_size
        return np.zeros((height, width, 3), dtype=np.uint8)

    def draw_hand(self, image: np.ndarray, hand: HandLandmarks) -> np.ndarray:
        """Draw hand skeleton on a BGR image."""
        height, width = image.shape[:2]

        for start_idx, end_idx in HandDetector.HAND_CONNECTIONS:
            start = hand.landmarks[start_idx].to_pixel(width, height)
            end = hand.landmarks[end_idx].to_pixel(width, height)
            cv2.line(image, start, end, self.config.connection_color, 2)

        for i, lm in enumerate(hand.landmarks):
            x, y = lm.to_pixel(width, height)
            if i in FINGERTIPS:
                cv2.circle(image, (x, y), 7, (0, 0, 255), -1)
            else:
                cv2.circle(image, (x, y), 4, self.config.landmark_color, -1)

        # Position anchor used for camera orbit
        anchor = hand.get(LandmarkIndex.MIDDLE_MCP).to_pixel(width, height)
        cv2.circle(image, anchor, 10, self.config.active_color, 2)
        return image

    def draw_status(self, image: np.ndarray, frame: RenderFrame) -> np.ndarray:
        """Draw gesture status label, top right."""
        status = frame.snapshot.status
        if frame.manual_held:
            status = "MANUAL"
        color = self.config.active_color if frame.snapshot.hand_detected or frame.manual_held \
            else self.config.idle_color

        width = image.shape[1]
        text_size = cv2.getTextSize(status, self._font, 0.9, self.config.font_thickness)[0]
        cv2.putText(image, status, (width - text_size[0] - 20, 40),
                    self._font, 0.9, color, self.config.font_thickness)
        return image

    def draw_progress(self, image: np.ndarray, progress: float) -> np.ndarray:
        """Draw the assembled -> dispersed progress bar along the bottom edge."""
        height, width = image.shape[:2]
        x0, y0 = 20, height - 30
        bar_width = width - 40
        filled = int(bar_width * min(1.0, max(0.0, progress)))

        cv2.rectangle(image, (x0, y0), (x0 + bar_width, y0 + 12), self.config.idle_color, 1)
        if filled > 0:
            cv2.rectangle(image, (x0, y0), (x0 + filled, y0 + 12), self.config.bar_color, -1)
        cv2.putText(image, f"progress {progress:.2f}", (x0, y0 - 8),
                    self._font, 0.5, self.config.text_color, 1)
        return image

    def draw_pose(self, image: np.ndarray, frame: RenderFrame) -> np.ndarray:
        """Draw camera mode, position and zoom."""
        x, y, z = frame.pose.position
        lines = [
            f"camera {frame.mode}",
            f"pos ({x:+.1f}, {y:+.1f}, {z:.1f})",
            f"zoom {frame.snapshot.zoom:.2f}",
        ]
        for i, line in enumerate(lines):
            cv2.putText(image, line, (20, 30 + i * 22),
                        self._font, 0.5, self.config.text_color, 1)
        return image

    def draw_rates(self, image: np.ndarray, rates: Dict[str, float]) -> np.ndarray:
        """Draw loop rates, bottom right above the progress bar."""
        height, width = image.shape[:2]
        for i, (name, hz) in enumerate(sorted(rates.items())):
            cv2.putText(image, f"{name} {hz:.0f}Hz", (width - 140, height - 60 - i * 20),
                        self._font, 0.5, self.config.text_color, 1)
        return image

    def compose(
        self,
        image: Optional[np.ndarray],
        frame: RenderFrame,
        hand: Optional[HandLandmarks] = None,
        rates: Optional[Dict[str, float]] = None,
    ) -> np.ndarray:
        """Full overlay; draws on a copy (or a blank canvas without camera)."""
        canvas = self.blank_canvas() if image is None else image.copy()

        if hand is not None and self.config.show_landmarks:
            self.draw_hand(canvas, hand)
        if self.config.show_status:
            self.draw_status(canvas, frame)
        if self.config.show_pose:
            self.draw_pose(canvas, frame)
        if self.config.show_progress:
            self.draw_progress(canvas, frame.progress)
        if rates and self.config.show_rates:
            self.draw_rates(canvas, rates)
        return canvas
