"""
handmorph
=========

Hand-gesture control pipeline for an interactive 3D installation that
morphs between an "assembled" and a "dispersed" state.

Modules:
    - capture: Camera frame acquisition
    - detection: MediaPipe hand landmark detection boundary
    - recognition: Open/pinch classification, relative zoom, snapshots
    - control: Progress smoothing and camera rig
    - core: Pipeline orchestration and event bus
    - utils: Configuration, logging, performance, preview overlay
"""

__version__ = "1.0.0"
