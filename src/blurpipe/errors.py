"""Exception hierarchy for blurpipe."""


class BlurPipeError(Exception):
    """Base error for the render pipeline."""


class ConfigurationError(BlurPipeError):
    """Raised when settings or paths cannot produce a valid command."""


class MalformedPathError(ConfigurationError, ValueError):
    """Raised when a path lacks the file-name component a render needs."""


class ToolchainError(BlurPipeError):
    """Raised when the vspipe/ffmpeg executables cannot be located."""


class ProcessLaunchError(BlurPipeError):
    """Raised when vspipe or ffmpeg cannot be spawned."""


class RenderFailedError(BlurPipeError):
    """Raised when a pipeline finishes with a non-zero exit status."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class CleanupError(BlurPipeError):
    """Raised when temp artifacts cannot be removed."""
