"""Default VapourSynth script writer.

Produces the smallest script vspipe can render for a video: an ffms2 source
node set as output. Callers with their own filter graph pass a different
writer to RenderRequest.create.
"""

from pathlib import Path

from .models import RenderSettings

SCRIPT_SUFFIX = ".vpy"

SCRIPT_TEMPLATE = """\
import vapoursynth as vs

core = vs.core

clip = core.ffms2.Source(source={source!r})
clip.set_output()
"""


def write_script(scratch_dir: Path, video_path: Path, settings: RenderSettings) -> Path:
    """Write the frame-source script into scratch_dir and return its path."""
    video_path = Path(video_path)
    script_path = Path(scratch_dir) / (video_path.stem + SCRIPT_SUFFIX)
    script_path.write_text(SCRIPT_TEMPLATE.format(source=str(video_path.resolve())), encoding="utf-8")
    return script_path
