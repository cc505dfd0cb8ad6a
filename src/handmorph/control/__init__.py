"""Render-side control: progress smoothing and camera rig."""
from .camera_rig import AUTONOMOUS, MANUAL, CameraPose, CameraRig, CameraRigConfig, next_camera_position
from .progress import ProgressSmoother, SmootherConfig

__all__ = [
    "AUTONOMOUS",
    "MANUAL",
    "CameraPose",
    "CameraRig",
    "CameraRigConfig",
    "ProgressSmoother",
    "SmootherConfig",
    "next_camera_position",
]
