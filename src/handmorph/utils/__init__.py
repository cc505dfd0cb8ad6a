"""Configuration, logging, performance and preview utilities."""
from .config import load_config
from .logger import PipelineEventLogger, setup_logging
from .performance import PerformanceMonitor, Timer

__all__ = ["PerformanceMonitor", "PipelineEventLogger", "Timer", "load_config", "setup_logging"]
