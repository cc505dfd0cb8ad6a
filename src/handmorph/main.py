"""
handmorph - Application
========================

Runs the detection loop (camera -> detector -> pipeline) in a background
thread and the render loop on the main thread at a fixed rate. Renderers
plug in through `render_sink`; the built-in OpenCV preview is a debugging
aid for tuning gestures.
"""

import argparse
import logging
import signal
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from handmorph.capture.camera import Camera, CameraConfig
from handmorph.core.pipeline import GesturePipeline, PipelineConfig, RenderFrame
from handmorph.detection.hand_detector import HandDetector, HandDetectorConfig
from handmorph.utils.config import load_config
from handmorph.utils.logger import PipelineEventLogger, setup_logging
from handmorph.utils.performance import PerformanceMonitor
from handmorph.utils.visualization import Visualizer, VisualizerConfig

logger = logging.getLogger(__name__)

WINDOW_NAME = "handmorph preview"


@dataclass
class AppConfig:
    """Application configuration container."""
    capture: CameraConfig
    detector: HandDetectorConfig
    pipeline: PipelineConfig
    visualizer: VisualizerConfig = field(default_factory=VisualizerConfig)
    render_fps: float = 60.0
    preview: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None


def create_app_config(config_dict: dict) -> AppConfig:
    """Create AppConfig from the merged configuration dictionary."""
    render = config_dict.get("render", {})
    logging_cfg = config_dict.get("logging", {})
    return AppConfig(
        capture=CameraConfig.from_dict(config_dict.get("capture", {})),
        detector=HandDetectorConfig.from_dict(config_dict.get("detector", {})),
        pipeline=PipelineConfig.from_dict(config_dict),
        visualizer=VisualizerConfig.from_dict(config_dict.get("visualizer", {})),
        render_fps=render.get("fps", 60),
        preview=render.get("preview", True),
        log_level=logging_cfg.get("level", "INFO"),
        log_file=logging_cfg.get("file"),
    )


class HandMorphApp:
    """
    Wires capture, detection and the gesture pipeline to a renderer.

    Modes:
    - tracking: camera and detector available, gestures drive the scene
    - degraded: no camera or no detector; autonomous camera orbit and
      manual override only
    """

    def __init__(self, config: AppConfig, use_camera: bool = True,
                 render_sink: Optional[Callable[[RenderFrame], None]] = None):
        self.config = config
        self.use_camera = use_camera
        self.render_sink = render_sink

        self.camera = Camera(config.capture)
        self.detector = HandDetector(config.detector)
        self.pipeline = GesturePipeline(config.pipeline, detector=self.detector)
        self.event_logger = PipelineEventLogger(self.pipeline.event_bus)

        self.detection_perf = PerformanceMonitor("detection", target_hz=config.capture.fps)
        self.render_perf = PerformanceMonitor("render", target_hz=config.render_fps)

        self._visualizer = None
        self._window_open = False
        self._running = False
        self._detection_thread: Optional[threading.Thread] = None
        self._latest_image = None
        self._last_status_log = 0.0
        self._last_status = None

    def start(self) -> None:
        """Bring up tracking if possible; never fails hard."""
        logger.info("Starting handmorph...")

        if not self.use_camera:
            self.pipeline.mark_degraded("camera disabled")
        elif not self.pipeline.initialize():
            pass  # degraded, reason already logged
        elif not self.camera.start():
            self.pipeline.mark_degraded("camera unavailable")
        else:
            self._detection_thread = threading.Thread(
                target=self._detection_loop, name="detection", daemon=True)

        if self.config.preview:
            self._visualizer = Visualizer(self.config.visualizer)

        self._running = True
        if self._detection_thread is not None:
            self._detection_thread.start()
        logger.info("handmorph started (%s)",
                    "degraded: " + self.pipeline.degraded_reason if self.pipeline.degraded else "tracking")

    def stop(self) -> None:
        """Stop both loops and release resources."""
        logger.info("Stopping handmorph...")
        self._running = False
        self.camera.stop()
        if self._detection_thread is not None:
            self._detection_thread.join(timeout=1.0)
            self._detection_thread = None
        self.pipeline.shutdown()
        if self._window_open:
            import cv2
            cv2.destroyAllWindows()
            self._window_open = False
        logger.info(self.detection_perf.get_report())
        logger.info(self.render_perf.get_report())

    def run(self, duration: Optional[float] = None) -> None:
        """Run until quit, signal, or `duration` seconds."""
        self.start()
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)
        try:
            self._render_loop(duration)
        finally:
            self.stop()

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    def _detection_loop(self) -> None:
        """Once per new camera frame; ends when the camera is released."""
        last_frame_number = -1
        while self._running and self.camera.is_running:
            frame = self.camera.read()
            if frame is None or frame.frame_number == last_frame_number:
                time.sleep(0.002)
                continue
            last_frame_number = frame.frame_number

            with self.detection_perf.measure("detect"):
                self.pipeline.process_frame(frame.rgb, frame.timestamp_ms)
            self._latest_image = frame.image
            self.detection_perf.tick()

        if self._running:
            self.pipeline.mark_degraded("camera released")
        logger.info("Detection loop stopped")

    def _render_loop(self, duration: Optional[float]) -> None:
        """Fixed-rate render ticks; re-uses the latest snapshot."""
        period = 1.0 / max(1.0, self.config.render_fps)
        started = time.monotonic()
        next_tick = started

        while self._running:
            with self.render_perf.measure("tick"):
                frame = self.pipeline.render_tick()
                if self.render_sink is not None:
                    self.render_sink(frame)
                self._log_status(frame)
                if self._visualizer is not None:
                    self._show_preview(frame)
            self.render_perf.tick()

            if duration is not None and time.monotonic() - started >= duration:
                break

            next_tick += period
            delay = next_tick - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            else:
                next_tick = time.monotonic()

    # ------------------------------------------------------------------
    # Preview and status
    # ------------------------------------------------------------------

    def _show_preview(self, frame: RenderFrame) -> None:
        import cv2

        image = self._visualizer.compose(
            self._latest_image,
            frame,
            hand=self.pipeline.last_hand,
            rates={"det": self.detection_perf.rate_hz, "render": self.render_perf.rate_hz},
        )
        cv2.imshow(WINDOW_NAME, image)
        self._window_open = True
        self.handle_key(cv2.waitKey(1) & 0xFF)

    def handle_key(self, key: int) -> None:
        """Preview keys: e = toggle manual hold, r = reset, q/ESC = quit."""
        if key in (ord("q"), 27):
            self._running = False
        elif key == ord("e"):
            if self.pipeline.smoother.manual_held:
                self.pipeline.release_manual()
            else:
                self.pipeline.press_manual()
        elif key == ord("r"):
            self.pipeline.reset()

    def _log_status(self, frame: RenderFrame) -> None:
        """Log render state at most once per second when it changes."""
        status = (frame.snapshot.status, frame.mode, frame.manual_held)
        now = time.monotonic()
        if status != self._last_status and now - self._last_status_log >= 1.0:
            logger.debug("status=%s camera=%s progress=%.2f pos=(%.1f, %.1f, %.1f)",
                         frame.snapshot.status, frame.mode, frame.progress, *frame.pose.position)
            self._last_status = status
            self._last_status_log = now

    def _signal_handler(self, signum, frame) -> None:
        logger.info("Received signal %d, shutting down...", signum)
        self._running = False


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Hand-gesture control pipeline for an assemble/disperse 3D installation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Preview keys:
  e         - Toggle manual "hold to disperse"
  r         - Reset to assembled (new layout)
  q/ESC     - Quit

Examples:
  handmorph
  handmorph --no-camera
  handmorph --config my_config.yaml --debug
        """,
    )
    parser.add_argument("--config", "-c", default=None,
                        help="Path to configuration file (default: ./config/config.yaml)")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-camera", action="store_true",
                        help="Run without hand tracking (autonomous camera, manual override)")
    parser.add_argument("--no-preview", action="store_true", help="Disable the OpenCV preview window")
    parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    args = parser.parse_args(argv)

    config_dict = load_config(args.config)
    app_config = create_app_config(config_dict)
    if args.no_preview:
        app_config.preview = False

    setup_logging("DEBUG" if args.debug else app_config.log_level, app_config.log_file)

    app = HandMorphApp(app_config, use_camera=not args.no_camera)
    app.run(duration=args.duration)


if __name__ == "__main__":
    main()
