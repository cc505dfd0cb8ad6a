"""
Camera Capture
===============

Threaded OpenCV capture feeding the detection loop. Only the most recent
frame is kept; the detection loop skips ahead when it falls behind.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    buffer_size: int = 1        # Minimal buffering for low latency
    threaded: bool = True
    flip_horizontal: bool = False  # Gesture positions are mirrored downstream
    warmup_frames: int = 5
    max_failed_reads: int = 30  # Consecutive failures before the device counts as released

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 640),
            height=config.get("height", 480),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            threaded=config.get("threaded", True),
            flip_horizontal=config.get("flip_horizontal", False),
            warmup_frames=config.get("warmup_frames", 5),
            max_failed_reads=config.get("max_failed_reads", 30),
        )


@dataclass
class Frame:
    """Captured frame with metadata."""
    image: np.ndarray
    timestamp: float
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp * 1000)


class Camera:
    """
    OpenCV capture with optional background thread.

    A device that cannot be opened (missing camera, permission denied)
    makes `start()` return False; the application then runs without
    hand tracking rather than failing.

    Example:
        >>> camera = Camera(CameraConfig())
        >>> if camera.start():
        ...     frame = camera.read()
        >>> camera.stop()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0
        self._failed_reads = 0
        self._running = False

        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._latest_frame: Optional[Frame] = None

    def start(self) -> bool:
        """
        Open the capture device.

        Returns:
            True if frames can be read
        """
        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width, self.config.height, self.config.fps)

        self._cap = cv2.VideoCapture(self.config.device_id)
        if not self._cap.isOpened():
            logger.error("Failed to open camera device %d (missing or permission denied)",
                         self.config.device_id)
            self._release()
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        ok, test_frame = self._cap.read()
        if not ok or test_frame is None:
            logger.error("Camera device %d opened but returns no frames", self.config.device_id)
            self._release()
            return False

        logger.info("Camera initialized: %dx%d@%.0ffps",
                    int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    self._cap.get(cv2.CAP_PROP_FPS))

        for _ in range(self.config.warmup_frames):
            self._cap.read()

        self._running = True
        self._frame_number = 0
        self._failed_reads = 0

        if self.config.threaded:
            self._thread = threading.Thread(target=self._capture_loop, name="camera", daemon=True)
            self._thread.start()
            logger.debug("Started threaded capture")

        return True

    def stop(self) -> None:
        """Stop capture and release the device."""
        if not self._running and self._cap is None:
            return
        logger.info("Stopping camera...")
        self._running = False

        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        self._release()
        logger.info("Camera stopped")

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def read(self) -> Optional[Frame]:
        """
        Latest frame (threaded) or a freshly captured one (synchronous).

        Returns:
            Frame or None when nothing is available
        """
        if not self._running:
            return None

        if self.config.threaded:
            with self._lock:
                return self._latest_frame
        return self._capture_frame()

    def _capture_frame(self) -> Optional[Frame]:
        if not self._cap:
            return None

        ok, image = self._cap.read()
        if not ok or image is None:
            self._failed_reads += 1
            if self._failed_reads > self.config.max_failed_reads:
                logger.error("Camera stopped delivering frames; releasing device")
                self._running = False
            return None
        self._failed_reads = 0

        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)

        self._frame_number += 1
        return Frame(image=image, timestamp=time.time(), frame_number=self._frame_number)

    def _capture_loop(self) -> None:
        """Background thread for continuous frame capture."""
        while self._running:
            frame = self._capture_frame()
            if frame is not None:
                with self._lock:
                    self._latest_frame = frame
            else:
                time.sleep(0.005)

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
