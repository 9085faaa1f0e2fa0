"""Build the vspipe | ffmpeg command pair for a render.

The builder is deterministic for a given toolchain: it performs no I/O beyond
resolving executables when no toolchain is passed in.
"""

import logging
import shlex
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import ConfigurationError, MalformedPathError
from .models import RenderSettings
from .toolchain import Toolchain, resolve_toolchain

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_RATE = 48000
AUDIO_BITRATE = "320k"
SOFTWARE_PRESET = "superfast"
STREAM_FORMAT = "nut"
STREAM_TARGET = "-"


@dataclass(frozen=True)
class CommandWithArgs:
    """Executables and arguments for both pipeline stages."""
    vspipe_exe: str
    vspipe_args: Tuple[str, ...]
    ffmpeg_exe: str
    ffmpeg_args: Tuple[str, ...]
    output_filename: str  # What the user is told was written ("-" when streaming)

    def vspipe_argv(self) -> List[str]:
        return [self.vspipe_exe, *self.vspipe_args]

    def ffmpeg_argv(self) -> List[str]:
        return [self.ffmpeg_exe, *self.ffmpeg_args]

    def describe(self) -> str:
        """Shell-like rendering of the pipeline, for logs."""
        return f"{shlex.join(self.vspipe_argv())} | {shlex.join(self.ffmpeg_argv())}"


def format_number(value: float) -> str:
    """Shortest round-trip form of a number, without a trailing '.0'.

    >>> format_number(2.0), format_number(0.5), format_number(1e-05)
    ('2', '0.5', '0.00001')
    """
    text = format(Decimal(repr(float(value))), "f")
    if text.endswith(".0"):
        return text[:-2]
    return text


def build_audio_filters(settings: RenderSettings) -> str:
    """Return the comma-joined audio filter chain ("" when none apply)."""
    timescale = settings.timescale
    filters = []

    if timescale.input != 1.0:
        # asetrate: speed up and change pitch
        filters.append(f"asetrate={AUDIO_SAMPLE_RATE}*{format_number(1.0 / timescale.input)}")

    if timescale.output != 1.0:
        if timescale.adjust_audio_pitch:
            filters.append(f"asetrate={AUDIO_SAMPLE_RATE}*{format_number(timescale.output)}")
        else:
            # atempo: speed up without changing pitch
            filters.append(f"atempo={format_number(timescale.output)}")

    return ",".join(filters)


def build_gpu_encoder_args(gpu_type: str, quality: str) -> List[str]:
    """Hardware encoder flags for a vendor, matched case-insensitively."""
    vendor = gpu_type.lower()
    if vendor == "nvidia":
        return ["-c:v", "h264_nvenc", "-preset", "p7", "-qp", quality]
    if vendor == "amd":
        return [
            "-c:v", "h264_amf",
            "-qp_i", quality,
            "-qp_b", quality,
            "-qp_p", quality,
            "-quality", "quality",
        ]
    if vendor == "intel":
        return ["-c:v", "h264_qsv", "-global_quality", quality, "-preset", "veryslow"]
    raise ConfigurationError(f"Unknown gpu_type {gpu_type!r}")


def build_encoder_args(settings: RenderSettings, stdout: bool) -> List[str]:
    """Video/audio codec flags, or the custom override split shell-style."""
    advanced = settings.advanced.encoding
    if advanced.custom_ffmpeg_filters:
        return shlex.split(advanced.custom_ffmpeg_filters)

    quality = str(settings.encoding.quality)
    if advanced.gpu:
        args = build_gpu_encoder_args(advanced.gpu_type, quality)
    elif not stdout:
        args = ["-c:v", "libx264", "-preset", SOFTWARE_PRESET, "-crf", quality]
    else:
        args = ["-c:v", "rawvideo"]

    args.extend(["-c:a", "aac", "-b:a", AUDIO_BITRATE])
    args.extend(["-movflags", "+faststart"])
    return args


def detailed_output_path(output_path: Path, settings: RenderSettings) -> Path:
    """Rename the output to embed interpolation and blending parameters."""
    name = "{}-{}fps-{}~{}fps-{}".format(
        output_path.stem,
        settings.interpolation.fps,
        settings.advanced.interpolation.program,
        settings.blending.output_fps,
        format_number(settings.blending.amount),
    )
    return output_path.with_name(name + output_path.suffix)


def resolve_output_target(
    output_path: Path, settings: RenderSettings, stdout: bool
) -> Tuple[List[str], str]:
    """Pick exactly one output form: detailed name, stdout stream or plain path.

    Returns the extra format flags and the final output target.
    """
    if (
        settings.encoding.detailed_filename
        and settings.interpolation.enabled
        and settings.blending.enabled
    ):
        return [], str(detailed_output_path(output_path, settings))
    if stdout:
        return ["-f", STREAM_FORMAT], STREAM_TARGET
    return [], str(output_path)


def _require_file_name(path: Path, what: str) -> None:
    if not path.name or not path.stem:
        raise MalformedPathError(f"{what} has no file name: {str(path)!r}")


def build_commands(
    script_path: Path,
    video_path: Path,
    output_path: Path,
    settings: RenderSettings,
    stdout: bool,
    toolchain: Optional[Toolchain] = None,
) -> CommandWithArgs:
    """Translate settings into the vspipe and ffmpeg invocations.

    Args:
        script_path: Generated VapourSynth script
        video_path: Original input (second ffmpeg input, for its audio)
        output_path: Nominal output file
        settings: Render settings snapshot
        stdout: Stream the result to stdout instead of writing a file
        toolchain: Executables to use (resolved when omitted)

    Raises:
        MalformedPathError: video_path or output_path has no file name
        ConfigurationError: GPU encoding requested for an unknown vendor
        ToolchainError: the running binary's location cannot be determined
    """
    script_path, video_path, output_path = Path(script_path), Path(video_path), Path(output_path)
    _require_file_name(video_path, "Input video")
    _require_file_name(output_path, "Output path")

    if toolchain is None:
        toolchain = resolve_toolchain()

    vspipe_args = (str(script_path), "-", "-p", "-c", "y4m")

    ffmpeg_args = [
        "-loglevel", "error",
        "-hide_banner",
        "-nostats",
        "-i", "-",
        "-i", str(video_path),
        "-map", "0:v",
        "-map", "1:a?",
    ]

    audio_filters = build_audio_filters(settings)
    if audio_filters:
        ffmpeg_args.extend(["-af", audio_filters])

    ffmpeg_args.extend(build_encoder_args(settings, stdout))

    format_args, output_filename = resolve_output_target(output_path, settings, stdout)
    ffmpeg_args.extend(format_args)
    ffmpeg_args.append(output_filename)
    logger.debug("ffmpeg arguments: %s", ffmpeg_args)

    return CommandWithArgs(
        vspipe_exe=toolchain.vspipe,
        vspipe_args=vspipe_args,
        ffmpeg_exe=toolchain.ffmpeg,
        ffmpeg_args=tuple(ffmpeg_args),
        output_filename=output_filename,
    )
