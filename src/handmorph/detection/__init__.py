"""Hand detection boundary using MediaPipe."""
from .hand_detector import (
    HandDetector,
    HandDetectorConfig,
    HandLandmarks,
    Landmark,
    LandmarkIndex,
)

__all__ = ["HandDetector", "HandDetectorConfig", "HandLandmarks", "Landmark", "LandmarkIndex"]
