"""
Synthetic hand poses for tests.

Poses are written in palm units relative to the wrist (middle-finger MCP
at (0, -1), image y pointing down) and placed into image space with an
origin and a palm scale.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from handmorph.detection.hand_detector import HandLandmarks, Landmark

# Per finger: MCP and tip; PIP/DIP are interpolated
_PALM = {
    "thumb": (-0.5, -0.2),     # CMC; thumb has CMC, MCP, IP, TIP
    "index": (-0.4, -1.0),
    "middle": (0.0, -1.0),
    "ring": (0.4, -1.0),
    "pinky": (0.8, -0.8),
}

POSES = {
    "open": {
        "thumb": (-1.2, -1.2),
        "index": (-0.5, -2.5),
        "middle": (0.0, -2.8),
        "ring": (0.5, -2.5),
        "pinky": (1.0, -2.0),
    },
    "fist": {
        "thumb": (-0.4, -0.6),
        "index": (-0.3, -0.8),
        "middle": (0.0, -0.9),
        "ring": (0.3, -0.8),
        "pinky": (0.6, -0.6),
    },
    "ok": {
        "thumb": (-0.6, -1.6),
        "index": (-0.7, -1.7),
        "middle": (0.0, -2.8),
        "ring": (0.5, -2.5),
        "pinky": (1.0, -2.0),
    },
}


def _lerp(a, b, t):
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def pose_points(pose: str):
    """21 points in palm units for a named pose."""
    tips = POSES[pose]
    points = [(0.0, 0.0)]  # wrist

    thumb_cmc = _PALM["thumb"]
    points += [thumb_cmc, _lerp(thumb_cmc, tips["thumb"], 1 / 3),
               _lerp(thumb_cmc, tips["thumb"], 2 / 3), tips["thumb"]]

    for finger in ("index", "middle", "ring", "pinky"):
        mcp, tip = _PALM[finger], tips[finger]
        points += [mcp, _lerp(mcp, tip, 1 / 3), _lerp(mcp, tip, 2 / 3), tip]
    return points


def make_hand(pose: str = "open", origin=(0.5, 0.8), scale: float = 0.1) -> HandLandmarks:
    """Place a pose in normalized image space."""
    ox, oy = origin
    return HandLandmarks(
        landmarks=[Landmark(ox + x * scale, oy + y * scale) for x, y in pose_points(pose)],
        handedness="Right",
        confidence=0.95,
    )
