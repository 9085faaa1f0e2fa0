import pytest

from blurpipe.models import RenderSettings
from blurpipe.toolchain import Toolchain


def merge(base: dict, override: dict) -> dict:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = value
    return result


@pytest.fixture
def make_settings():
    """Build RenderSettings from a partial nested dict."""
    def factory(**sections) -> RenderSettings:
        return RenderSettings.from_dict(merge(RenderSettings().model_dump(), sections))

    return factory


@pytest.fixture
def toolchain():
    return Toolchain(vspipe="vspipe", ffmpeg="ffmpeg")


@pytest.fixture
def video(tmp_path):
    """A stand-in source video inside its own folder."""
    folder = tmp_path / "videos"
    folder.mkdir()
    path = folder / "clip.mp4"
    path.write_bytes(b"\x00" * 16)
    return path
