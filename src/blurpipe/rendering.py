"""Render requests and the sequential render queue."""

import logging
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from tqdm import tqdm

from .cleanup import clean, clean_temp, create_scratch_dir
from .commands import build_commands
from .errors import ConfigurationError, MalformedPathError, RenderFailedError
from .models import RenderSettings
from .pipe_runner import PipelineResult, PipelineRunner, stderr_is_interactive
from .progress import tqdm_callback
from .script import write_script
from .toolchain import Toolchain

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = "_blur"

ScriptWriter = Callable[[Path, Path, RenderSettings], Path]


@dataclass(frozen=True)
class RenderRequest:
    """One queued render. Two requests for the same input video are equal."""
    video_path: Path
    video_folder: Path = field(compare=False)
    script_path: Path = field(compare=False)
    output_path: Path = field(compare=False)
    settings: RenderSettings = field(compare=False, repr=False)
    stdout: bool = field(default=False, compare=False)

    @classmethod
    def create(
        cls,
        input_path: Path,
        settings: RenderSettings,
        stdout: bool = False,
        script_writer: ScriptWriter = write_script,
    ) -> "RenderRequest":
        """Allocate a scratch dir, write the frame-source script, and build the request.

        Raises:
            MalformedPathError: input_path has no parent or file name
            ConfigurationError: the scratch dir or script could not be written
        """
        video_path = Path(input_path)
        if not video_path.name or not video_path.stem or video_path.parent == video_path:
            raise MalformedPathError(f"Input has no file name: {str(input_path)!r}")

        video_folder = video_path.parent
        output_path = video_folder / f"{video_path.stem}{OUTPUT_SUFFIX}.{settings.encoding.container}"
        try:
            scratch_dir = create_scratch_dir(video_folder)
        except OSError as e:
            raise ConfigurationError(f"Cannot create a scratch dir in {video_folder}: {e}") from e
        try:
            script_path = script_writer(scratch_dir, video_path, settings)
        except OSError as e:
            shutil.rmtree(scratch_dir, ignore_errors=True)
            raise ConfigurationError(f"Cannot write the script for {video_path}: {e}") from e

        return cls(
            video_path=video_path,
            video_folder=video_folder,
            script_path=script_path,
            output_path=output_path,
            settings=settings,
            stdout=stdout,
        )


def format_time(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60
    if hours:
        return f"{hours}h {minutes}m {secs:.1f}s"
    if minutes:
        return f"{minutes}m {secs:.1f}s"
    return f"{secs:.1f}s"


def render_video(
    request: RenderRequest,
    toolchain: Optional[Toolchain] = None,
    interactive: Optional[bool] = None,
) -> PipelineResult:
    """Run one render end to end: build, execute, report, clean.

    Raises:
        RenderFailedError: the pipeline exited non-zero (temp files are kept)
    """
    cmd = build_commands(
        request.script_path,
        request.video_path,
        request.output_path,
        request.settings,
        request.stdout,
        toolchain=toolchain,
    )
    if interactive is None:
        interactive = stderr_is_interactive()

    with tqdm(
        total=None,
        desc=request.video_path.name,
        unit="frame",
        file=sys.stderr,
        dynamic_ncols=True,
        disable=interactive,
    ) as bar:
        runner = PipelineRunner(progress_callback=tqdm_callback(bar), interactive=interactive)
        result = runner.run(cmd)

    if not result.success:
        logger.error(
            "Processing failed: %s exited with %s", result.failed_stage.value, result.returncode
        )
        raise RenderFailedError(f"Processing {request.video_path.name} failed", result)

    print(
        f"Finished processing {request.video_path.name} to {cmd.output_filename} "
        f"in {format_time(result.duration_s)}",
        file=sys.stderr,
    )
    clean(request.video_path, request.script_path)
    return result


class RenderQueue:
    """Insertion-ordered renders, processed one at a time."""

    def __init__(self, toolchain: Optional[Toolchain] = None, interactive: Optional[bool] = None):
        self.queue: List[RenderRequest] = []
        self.renders_queued = False
        self.toolchain = toolchain
        self.interactive = interactive

    def queue_render(self, request: RenderRequest) -> None:
        self.queue.append(request)
        self.renders_queued = True

    def render_videos(self) -> List[PipelineResult]:
        """Render every queued request in order, then clear the queue.

        A failed render raises immediately and leaves the queue as it was.
        """
        results = []
        if not self.renders_queued:
            return results

        for request in self.queue:
            print(f"Processing {request.video_path.name}", file=sys.stderr)
            results.append(
                render_video(request, toolchain=self.toolchain, interactive=self.interactive)
            )

        self.queue.clear()
        self.renders_queued = False
        return results

    def discard(self) -> None:
        """Drop pending renders and remove their temp artifacts."""
        clean_temp(request for request in self.queue if request.script_path.exists())
        self.queue.clear()
        self.renders_queued = False
