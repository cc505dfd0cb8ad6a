"""
Configuration loading.
Reads a YAML file, merges it over the built-in defaults and validates the
result against a light schema. Problems are reported as warnings; the
pipeline always starts with usable values.
"""

import copy
import logging
import os
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Relative to the working directory
DEFAULT_CONFIG_PATH = os.path.join("config", "config.yaml")

DEFAULTS = {
    "capture": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "flip_horizontal": False,
        "threaded": True,
    },
    "detector": {
        "model_path": "",
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "min_presence_confidence": 0.5,
        "running_mode": "VIDEO",
        "download_model": True,
    },
    "classifier": {
        "open_ratio": 1.5,
        "pinch_ratio": 0.5,
        "extended_ratio": 1.0,
    },
    "calibration": {
        "sensitivity": 2.5,
        "reset_threshold": 30,
    },
    "smoother": {
        "smoothing_factor": 0.05,
        "hold_on_loss": False,
    },
    "camera_rig": {
        "default_position": [0.0, 2.0, 24.0],
        "far_distance": 55.0,
        "close_distance": 10.0,
        "orbit_x": 15.0,
        "orbit_y": 8.0,
        "manual_ease": 0.05,
        "idle_ease": 0.02,
        "idle_amplitude": 20.0,
        "idle_frequency": 0.1,
    },
    "render": {
        "fps": 60,
        "preview": True,
    },
    "visualizer": {
        "show_landmarks": True,
        "show_status": True,
        "show_progress": True,
        "show_pose": True,
        "show_rates": True,
        "canvas_size": [640, 480],
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}

class _Vector:
    """Schema entry for a fixed-length list of numbers."""

    def __init__(self, length: int):
        self.length = length
        self.__name__ = f"list of {length} numbers"

    def check(self, value) -> bool:
        if not isinstance(value, (list, tuple)) or len(value) != self.length:
            return False
        return all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)


# Schema: sections and the expected type of their known fields
_CONFIG_SCHEMA = {
    "capture": {"device_id": int, "width": int, "height": int, "fps": int},
    "detector": {"min_detection_confidence": float, "min_tracking_confidence": float,
                 "running_mode": str},
    "classifier": {"open_ratio": float, "pinch_ratio": float, "extended_ratio": float},
    "calibration": {"sensitivity": float, "reset_threshold": int, "neutral_zoom": float},
    "smoother": {"smoothing_factor": float, "hold_on_loss": bool},
    "camera_rig": {"default_position": _Vector(3), "far_distance": float, "close_distance": float,
                   "manual_ease": float, "idle_ease": float},
    "render": {"fps": int, "preview": bool},
    "visualizer": {"show_landmarks": bool, "show_status": bool, "show_progress": bool,
                   "show_pose": bool, "show_rates": bool, "canvas_size": _Vector(2)},
    "logging": {"level": str},
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _matches(value, expected_type) -> bool:
    if isinstance(expected_type, _Vector):
        return expected_type.check(value)
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool):
        return expected_type is bool
    if expected_type is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected_type)


def validate_config(data: dict) -> list:
    """
    Check fields against the schema.

    Returns:
        List of (section, field, message) tuples; field is None when the
        whole section is malformed.
    """
    problems = []
    for section_name, fields in _CONFIG_SCHEMA.items():
        section = data.get(section_name)
        if section is None:
            continue
        if not isinstance(section, dict):
            problems.append((section_name, None,
                             f"section '{section_name}' should be a dict, got {type(section).__name__}"))
            continue
        for field_name, expected_type in fields.items():
            if field_name in section and not _matches(section[field_name], expected_type):
                value = section[field_name]
                problems.append((section_name, field_name,
                                 f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                                 f"got {type(value).__name__} ({value!r})"))

    for _, _, message in problems:
        logger.warning("Config validation: %s", message)
    return problems


def _drop_invalid(data: dict, problems: list) -> dict:
    """Replace fields that failed validation with their defaults."""
    cleaned = copy.deepcopy(data)
    for section, field_name, _ in problems:
        if field_name is None:
            cleaned[section] = copy.deepcopy(DEFAULTS.get(section, {}))
        elif field_name in DEFAULTS.get(section, {}):
            cleaned[section][field_name] = copy.deepcopy(DEFAULTS[section][field_name])
        else:
            cleaned[section].pop(field_name, None)
    return cleaned


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from YAML, falling back to defaults.

    Args:
        config_path: Path to YAML file (default: ./config/config.yaml)

    Returns:
        Merged configuration dictionary
    """
    config_path = config_path or DEFAULT_CONFIG_PATH
    user_data = {}

    try:
        with open(config_path, "r") as f:
            user_data = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    except FileNotFoundError:
        logger.warning("Config file not found: %s, using defaults", config_path)
    except yaml.YAMLError as e:
        logger.warning("Invalid YAML in %s (%s), using defaults", config_path, e)

    if not isinstance(user_data, dict):
        logger.warning("Config root must be a mapping, got %s; using defaults",
                       type(user_data).__name__)
        user_data = {}

    merged = _deep_merge(copy.deepcopy(DEFAULTS), user_data)
    problems = validate_config(merged)
    if problems:
        merged = _drop_invalid(merged, problems)
    else:
        logger.debug("Config validation passed")
    return merged
