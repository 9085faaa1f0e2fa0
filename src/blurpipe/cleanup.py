"""Temp artifact tracking: per-render scratch directories and their cleanup."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from .errors import CleanupError

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = ".blurpipe-"
INDEX_SUFFIX = ".ffindex"


def create_scratch_dir(video_folder: Path) -> Path:
    """Create a directory owned by exactly one render, next to its video."""
    return Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=video_folder))


def index_path(video_path: Path) -> Path:
    """The ffms2 index sidecar vspipe leaves beside the source video."""
    video_path = Path(video_path)
    return video_path.with_name(video_path.name + INDEX_SUFFIX)


def clean(video_path: Path, script_path: Path) -> None:
    """Remove a render's script (or its whole scratch dir) and the index sidecar.

    The script's directory is removed outright when the script is its only
    entry; otherwise just the script goes. A missing index file is fine.

    Raises:
        CleanupError: any filesystem failure other than a missing index
    """
    script_path = Path(script_path)
    scratch_dir = script_path.parent
    logger.debug("Cleaning temp files at: %s", script_path)

    try:
        if sum(1 for _ in scratch_dir.iterdir()) <= 1:
            shutil.rmtree(scratch_dir)
            logger.debug("Removed temp dir %s", scratch_dir)
        else:
            script_path.unlink()
            logger.debug("Removed temp file %s", script_path)
    except OSError as e:
        raise CleanupError(f"Problem deleting temp files in {scratch_dir}: {e}") from e

    try:
        index_path(video_path).unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise CleanupError(f"Problem deleting the file {index_path(video_path)}: {e}") from e


def clean_temp(requests: Iterable) -> None:
    """Clean artifacts for every request in a queue."""
    for request in requests:
        clean(request.video_path, request.script_path)
