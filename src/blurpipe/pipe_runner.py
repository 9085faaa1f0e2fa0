"""vspipe | ffmpeg runner with progress monitoring.

This module spawns the two pipeline stages with vspipe's stdout connected
straight to ffmpeg's stdin, so frames flow kernel pipe to kernel pipe and a
slow encoder back-pressures the frame source. A monitor thread drains vspipe's
stderr for `Frame: n/total` records while the main thread waits on both
processes.

Key Features:
- No in-process buffering of the video stream
- Concurrent stderr draining (neither pipe can fill and stall a process)
- Combined exit status blaming the stage that failed first
"""

import logging
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .commands import CommandWithArgs
from .errors import ProcessLaunchError
from .progress import FrameProgress, ProgressExtractor

logger = logging.getLogger(__name__)

SIGPIPE = getattr(signal, "SIGPIPE", None)


class PipelineStage(Enum):
    """Pipeline stage that failed."""
    SOURCE = "vspipe"
    TRANSCODER = "ffmpeg"


@dataclass
class PipelineResult:
    """Result of one pipeline execution."""
    success: bool
    returncode: int
    source_returncode: int
    transcoder_returncode: int
    duration_s: float
    failed_stage: Optional[PipelineStage] = None
    final_progress: Optional[FrameProgress] = None


def stderr_is_interactive() -> bool:
    """True when our stderr is a terminal."""
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


class PipelineRunner:
    """Run a CommandWithArgs as a two-process pipeline.

    When our stderr is a terminal, vspipe inherits it and draws its own
    progress line; otherwise its stderr is captured and parsed so the
    progress callback can drive a bar.

    Example:
        >>> runner = PipelineRunner(progress_callback=tqdm_callback(bar))
        >>> result = runner.run(build_commands(script, video, output, settings, False))
        >>> if not result.success:
        ...     print(f"{result.failed_stage.value} exited with {result.returncode}")
    """

    def __init__(
        self,
        progress_callback: Optional[Callable[[FrameProgress], None]] = None,
        interactive: Optional[bool] = None,
    ):
        """Initialize pipeline runner.

        Args:
            progress_callback: Optional callback for frame progress updates
            interactive: Leave vspipe's stderr on the terminal (None = detect)
        """
        self.progress_callback = progress_callback
        self.interactive = interactive

        self._extractor: Optional[ProgressExtractor] = None
        self._monitor_thread: Optional[threading.Thread] = None

    def run(self, cmd: CommandWithArgs) -> PipelineResult:
        """Spawn both stages, drain progress, and wait for completion.

        Raises:
            ProcessLaunchError: either executable could not be started
        """
        interactive = stderr_is_interactive() if self.interactive is None else self.interactive
        start_time = time.time()
        logger.debug("Starting processes with %s", cmd.describe())

        vspipe = self._spawn(
            cmd.vspipe_argv(),
            stdout=subprocess.PIPE,
            stderr=None if interactive else subprocess.PIPE,
        )
        try:
            ffmpeg = self._spawn(cmd.ffmpeg_argv(), stdin=vspipe.stdout)
        except ProcessLaunchError:
            vspipe.kill()
            vspipe.communicate()
            raise

        # ffmpeg holds its own copy; ours would keep the pipe open after ffmpeg exits
        vspipe.stdout.close()
        logger.debug("Spawned subprocesses (vspipe pid %s, ffmpeg pid %s)", vspipe.pid, ffmpeg.pid)

        self._extractor = ProgressExtractor(self.progress_callback)
        if not interactive:
            self._monitor_thread = threading.Thread(
                target=self._monitor_progress,
                args=(vspipe.stderr,),
                daemon=True,
            )
            self._monitor_thread.start()

        try:
            exit_order = self._wait_all(vspipe, ffmpeg)
            if self._monitor_thread:
                self._monitor_thread.join()
        finally:
            self._monitor_thread = None
            if vspipe.stderr:
                vspipe.stderr.close()

        return self._build_result(
            vspipe.returncode,
            ffmpeg.returncode,
            time.time() - start_time,
            transcoder_exited_first=exit_order[0] is PipelineStage.TRANSCODER,
        )

    def _spawn(self, argv, **popen_kwargs) -> subprocess.Popen:
        try:
            return subprocess.Popen(argv, **popen_kwargs)
        except OSError as e:
            raise ProcessLaunchError(f"Failed to start {argv[0]}: {e}") from e

    def _wait_all(self, vspipe: subprocess.Popen, ffmpeg: subprocess.Popen) -> List[PipelineStage]:
        """Wait for both processes concurrently and return the order they exited in."""
        exit_order: List[PipelineStage] = []

        def wait(process, stage):
            process.wait()
            exit_order.append(stage)

        waiters = [
            threading.Thread(target=wait, args=(vspipe, PipelineStage.SOURCE), daemon=True),
            threading.Thread(target=wait, args=(ffmpeg, PipelineStage.TRANSCODER), daemon=True),
        ]
        for waiter in waiters:
            waiter.start()
        for waiter in waiters:
            waiter.join()
        return exit_order

    def _monitor_progress(self, stderr_stream) -> None:
        """Drain vspipe's stderr through the progress extractor until EOF.

        A failing callback stops progress updates; the stream is still read to EOF.
        """
        try:
            self._extractor.consume(stderr_stream)
        except Exception:
            logger.exception("Progress monitoring error")
            while stderr_stream.read(65536):
                pass

    def _build_result(
        self,
        source_returncode: int,
        transcoder_returncode: int,
        duration: float,
        transcoder_exited_first: bool = False,
    ) -> PipelineResult:
        failed_stage = None
        returncode = 0
        if source_returncode != 0 and self._broken_by_transcoder(
            source_returncode, transcoder_returncode, transcoder_exited_first
        ):
            failed_stage = PipelineStage.TRANSCODER
            returncode = transcoder_returncode
        elif source_returncode != 0:
            failed_stage = PipelineStage.SOURCE
            returncode = source_returncode
            if transcoder_returncode == 0:
                logger.warning(
                    "vspipe exited with %s but ffmpeg reported success", source_returncode
                )
        elif transcoder_returncode != 0:
            failed_stage = PipelineStage.TRANSCODER
            returncode = transcoder_returncode

        return PipelineResult(
            success=failed_stage is None,
            returncode=returncode,
            source_returncode=source_returncode,
            transcoder_returncode=transcoder_returncode,
            duration_s=duration,
            failed_stage=failed_stage,
            final_progress=self._extractor.state if self._extractor else None,
        )

    @staticmethod
    def _broken_by_transcoder(
        source_returncode: int, transcoder_returncode: int, transcoder_exited_first: bool
    ) -> bool:
        """True when vspipe died because ffmpeg closed the pipe under it."""
        if SIGPIPE is not None and source_returncode == -SIGPIPE:
            return transcoder_returncode != 0 or transcoder_exited_first
        return transcoder_returncode != 0 and transcoder_exited_first
