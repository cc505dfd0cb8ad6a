"""
Logging setup and pipeline event logging.
"""

import logging
import logging.handlers
import os

from handmorph.core.events import EventBus, Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console and optional rotating file logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-30s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class PipelineEventLogger:
    """Writes pipeline lifecycle events to the log and keeps simple counts."""

    def __init__(self, bus: EventBus):
        self.logger = logging.getLogger("handmorph.events")
        self.hands_acquired = 0
        self.calibrations = 0
        self.resets = 0

        bus.subscribe(Events.HAND_ACQUIRED, self._on_hand_acquired)
        bus.subscribe(Events.HAND_LOST, self._on_hand_lost)
        bus.subscribe(Events.CALIBRATED, self._on_calibrated)
        bus.subscribe(Events.CALIBRATION_CLEARED, self._on_calibration_cleared)
        bus.subscribe(Events.GRAB_STARTED, self._on_grab_started)
        bus.subscribe(Events.MODE_CHANGED, self._on_mode_changed)
        bus.subscribe(Events.MANUAL_OVERRIDE, self._on_manual_override)
        bus.subscribe(Events.RESET, self._on_reset)

    def _on_hand_acquired(self, snapshot):
        self.hands_acquired += 1
        self.logger.info("Hand acquired (%s, zoom=%.2f)", snapshot.status, snapshot.zoom)

    def _on_hand_lost(self, snapshot):
        self.logger.info("Hand lost")

    def _on_calibrated(self, baseline_scale):
        self.calibrations += 1
        self.logger.info("Zoom baseline captured: palm scale %.4f", baseline_scale)

    def _on_calibration_cleared(self, missed_frames):
        self.logger.info("Zoom baseline cleared after %d missed frames", missed_frames)

    def _on_grab_started(self, snapshot):
        self.logger.debug("Pinch-OK pose at (%.2f, %.2f)", *snapshot.position)

    def _on_mode_changed(self, mode, previous):
        self.logger.debug("Camera control: %s -> %s", previous, mode)

    def _on_manual_override(self, held):
        self.logger.info("Manual override %s", "held" if held else "released")

    def _on_reset(self, generation, reseed):
        self.resets += 1
        self.logger.info("Reset (layout generation %d, reseed=%s)", generation, reseed)
