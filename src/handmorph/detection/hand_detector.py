"""
Hand Detection Boundary - MediaPipe Tasks API
==============================================

Wraps the MediaPipe HandLandmarker so the rest of the pipeline only ever
sees a single `HandLandmarks` (21 normalized points) or ``None``.
"""

import logging
import math
import urllib.request
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
# Relative to the working directory; set detector.model_path for anything else
DEFAULT_MODEL_PATH = Path("models") / "hand_landmarker.task"

NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist, unused by classification

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


@dataclass
class HandDetectorConfig:
    """Configuration for hand detector."""
    model_path: str = ""
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    running_mode: str = "VIDEO"  # IMAGE or VIDEO
    download_model: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=d.get("model_path", ""),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            running_mode=d.get("running_mode", "VIDEO"),
            download_model=d.get("download_model", True),
        )


@dataclass
class HandLandmarks:
    """Container for one detected hand."""
    landmarks: List[Landmark]
    handedness: str = "Right"
    confidence: float = 1.0
    image_width: int = 1280
    image_height: int = 720

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    @property
    def is_complete(self) -> bool:
        """True when all 21 points are present and finite."""
        if len(self.landmarks) < NUM_LANDMARKS:
            return False
        return all(math.isfinite(lm.x) and math.isfinite(lm.y) for lm in self.landmarks)

    def to_numpy(self) -> np.ndarray:
        """Planar (x, y) coordinates as an array of shape (N, 2)."""
        return np.array([[lm.x, lm.y] for lm in self.landmarks], dtype=np.float64)

    def scaled(self, factor: float) -> "HandLandmarks":
        """Copy with every coordinate multiplied by `factor`."""
        return HandLandmarks(
            landmarks=[Landmark(lm.x * factor, lm.y * factor, lm.z * factor) for lm in self.landmarks],
            handedness=self.handedness,
            confidence=self.confidence,
            image_width=self.image_width,
            image_height=self.image_height,
        )

    @classmethod
    def from_points(cls, points, **kwargs) -> "HandLandmarks":
        """Build from a sequence of (x, y) or (x, y, z) tuples."""
        return cls(landmarks=[Landmark(*map(float, p)) for p in points], **kwargs)


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


class HandDetector:
    """
    Single-hand detector using MediaPipe Tasks API (HandLandmarker).

    `start()` reports initialization failure as ``False`` instead of
    raising; callers then run the pipeline in degraded mode.

    Example:
        >>> detector = HandDetector(HandDetectorConfig())
        >>> if detector.start():
        ...     hand = detector.detect(rgb_image)  # HandLandmarks or None
        >>> detector.stop()
    """

    HAND_CONNECTIONS = [
        (0, 1), (1, 2), (2, 3), (3, 4),      # Thumb
        (0, 5), (5, 6), (6, 7), (7, 8),      # Index
        (5, 9), (9, 10), (10, 11), (11, 12), # Middle
        (9, 13), (13, 14), (14, 15), (15, 16), # Ring
        (13, 17), (17, 18), (18, 19), (19, 20), # Pinky
        (0, 17),                               # Palm base
    ]

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker = None
        self._mp = None
        self._frame_timestamp = 0

    def start(self) -> bool:
        """Initialize the hand landmarker. Returns False on any failure."""
        try:
            import mediapipe as mp
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision

            model_path = self.config.model_path or str(DEFAULT_MODEL_PATH)

            if not Path(model_path).exists():
                if not self.config.download_model:
                    logger.error("Hand landmarker model not found at %s", model_path)
                    return False
                if not download_model(HAND_LANDMARKER_MODEL_URL, Path(model_path)):
                    logger.error("Could not download hand landmarker model")
                    return False

            if self.config.running_mode == "IMAGE":
                running_mode = vision.RunningMode.IMAGE
            else:
                running_mode = vision.RunningMode.VIDEO

            options = vision.HandLandmarkerOptions(
                base_options=python.BaseOptions(model_asset_path=model_path),
                running_mode=running_mode,
                num_hands=1,
                min_hand_detection_confidence=self.config.min_detection_confidence,
                min_hand_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
            self._mp = mp

            logger.info("HandLandmarker initialized with model: %s (mode=%s)",
                        model_path, self.config.running_mode)
            return True

        except Exception as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            self._landmarker = None
            return False

    def stop(self) -> None:
        """Release resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker stopped")

    @property
    def is_ready(self) -> bool:
        return self._landmarker is not None

    def detect(self, image: np.ndarray, timestamp_ms: Optional[int] = None) -> Optional[HandLandmarks]:
        """
        Run the landmarker on one RGB frame (H, W, 3).

        Only the first hand is kept. Returns None when no hand is found or
        the detector has not been started.
        """
        if self._landmarker is None:
            return None

        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=image)
        if self.config.running_mode == "IMAGE":
            result = self._landmarker.detect(mp_image)
        else:
            result = self._landmarker.detect_for_video(mp_image, self._next_timestamp(timestamp_ms))

        height, width = image.shape[:2]
        return self._first_hand(result, width, height)

    def _next_timestamp(self, timestamp_ms: Optional[int]) -> int:
        # VIDEO mode rejects timestamps that do not increase
        if timestamp_ms is None or timestamp_ms <= self._frame_timestamp:
            timestamp_ms = self._frame_timestamp + 33
        self._frame_timestamp = timestamp_ms
        return timestamp_ms

    @staticmethod
    def _first_hand(result, width: int, height: int) -> Optional[HandLandmarks]:
        if not result.hand_landmarks:
            return None

        label, score = "Right", 0.0
        if result.handedness and result.handedness[0]:
            category = result.handedness[0][0]
            label, score = category.category_name, category.score

        return HandLandmarks(
            landmarks=[Landmark(p.x, p.y, p.z) for p in result.hand_landmarks[0]],
            handedness=label,
            confidence=score,
            image_width=width,
            image_height=height,
        )

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
