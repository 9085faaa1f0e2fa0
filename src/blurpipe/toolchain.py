"""Toolchain: executable resolution and dependency checks."""

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .errors import ToolchainError

logger = logging.getLogger(__name__)

INSTALLER_MARKER = "installer.json"

VSPIPE = "vspipe"
FFMPEG = "ffmpeg"


@dataclass(frozen=True)
class Toolchain:
    vspipe: str
    ffmpeg: str


def exe_name(name: str) -> str:
    """Return the platform file name for a bundled executable."""
    if os.name == "nt":
        return f"{name}.exe"
    return name


def get_install_root() -> Path:
    """Directory holding the running binary."""
    executable = sys.executable
    if not executable:
        raise ToolchainError("Unable to determine the path of the running executable")
    return Path(executable).parent


def used_installer(root: Path) -> bool:
    """True when the installer marker sits beside the running binary."""
    return (root / INSTALLER_MARKER).is_file()


def resolve_toolchain(root: Optional[Path] = None) -> Toolchain:
    """Resolve vspipe/ffmpeg: bundled copies for installer layouts, else PATH names."""
    if root is None:
        root = get_install_root()

    if used_installer(root):
        toolchain = Toolchain(
            vspipe=str(root / "lib" / "vapoursynth" / exe_name("VSPipe")),
            ffmpeg=str(root / "lib" / "ffmpeg" / exe_name("ffmpeg")),
        )
        logger.debug("Using bundled executables under %s", root)
        return toolchain

    return Toolchain(vspipe=VSPIPE, ffmpeg=FFMPEG)


def check_executable(exe: str, version_args: Sequence[str] = ("-version",)) -> bool:
    """Verify an executable is installed and runs."""
    if os.sep not in exe and shutil.which(exe) is None:
        return False
    try:
        subprocess.run(
            [exe, *version_args],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
        return True
    except (FileNotFoundError, subprocess.CalledProcessError, OSError):
        return False


def check_toolchain(toolchain: Toolchain) -> dict[str, bool]:
    """Return availability of each pipeline executable keyed by name."""
    return {
        "vspipe": check_executable(toolchain.vspipe, ("--version",)),
        "ffmpeg": check_executable(toolchain.ffmpeg, ("-version",)),
    }
