"""Gesture recognition: classification, relative zoom and aggregation."""
from .aggregator import AggregatorConfig, GestureSnapshot, NEUTRAL_SNAPSHOT, aggregate
from .calibration import CalibrationConfig, CalibrationState, update_zoom
from .classifier import ClassifierConfig, HandMeasurement, classify

__all__ = [
    "AggregatorConfig",
    "CalibrationConfig",
    "CalibrationState",
    "ClassifierConfig",
    "GestureSnapshot",
    "HandMeasurement",
    "NEUTRAL_SNAPSHOT",
    "aggregate",
    "classify",
    "update_zoom",
]
