"""Pipeline orchestration and event bus."""
from .events import EventBus, Events
from .pipeline import GesturePipeline, PipelineConfig, RenderFrame

__all__ = ["EventBus", "Events", "GesturePipeline", "PipelineConfig", "RenderFrame"]
