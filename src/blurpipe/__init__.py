"""Orchestrate vspipe | ffmpeg motion-blur renders."""

from .commands import CommandWithArgs, build_commands
from .models import RenderSettings
from .pipe_runner import PipelineResult, PipelineRunner
from .progress import FrameProgress, ProgressExtractor
from .rendering import RenderQueue, RenderRequest, render_video

__version__ = "0.1.0"

__all__ = [
    "CommandWithArgs",
    "build_commands",
    "RenderSettings",
    "PipelineResult",
    "PipelineRunner",
    "FrameProgress",
    "ProgressExtractor",
    "RenderQueue",
    "RenderRequest",
    "render_video",
]
