"""Tests for render requests, single renders and the render queue."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from blurpipe.errors import ConfigurationError, MalformedPathError, RenderFailedError
from blurpipe.models import RenderSettings
from blurpipe.pipe_runner import PipelineResult, PipelineStage
from blurpipe.progress import FrameProgress
from blurpipe.rendering import RenderQueue, RenderRequest, format_time, render_video


def ok_result():
    return PipelineResult(
        success=True, returncode=0, source_returncode=0, transcoder_returncode=0,
        duration_s=1.5, final_progress=FrameProgress(total=10, current=10, found=True),
    )


def failed_result():
    return PipelineResult(
        success=False, returncode=1, source_returncode=0, transcoder_returncode=1,
        duration_s=0.2, failed_stage=PipelineStage.TRANSCODER,
    )


def mock_runner(result):
    runner_cls = MagicMock()
    runner_cls.return_value.run.return_value = result
    return runner_cls


class TestRenderRequest:
    def test_create_writes_script_in_scratch_dir(self, video):
        request = RenderRequest.create(video, RenderSettings())

        assert request.script_path.exists()
        assert request.script_path.suffix == ".vpy"
        assert request.script_path.parent.parent == video.parent
        assert str(video.resolve()) in request.script_path.read_text()

    def test_output_path_uses_container(self, video, make_settings):
        request = RenderRequest.create(video, make_settings(encoding={"container": "mkv"}))
        assert request.output_path == video.parent / "clip_blur.mkv"
        assert request.video_folder == video.parent

    def test_custom_script_writer(self, video):
        def writer(scratch_dir, video_path, settings):
            path = scratch_dir / "custom.vpy"
            path.write_text("# custom\n")
            return path

        request = RenderRequest.create(video, RenderSettings(), script_writer=writer)
        assert request.script_path.name == "custom.vpy"

    def test_equality_by_video_path(self, video):
        first = RenderRequest.create(video, RenderSettings())
        second = RenderRequest.create(video, RenderSettings(), stdout=True)
        assert first == second
        assert hash(first) == hash(second)
        assert first.script_path != second.script_path

    def test_different_videos_differ(self, video):
        other = video.with_name("other.mp4")
        other.write_bytes(b"")
        assert RenderRequest.create(video, RenderSettings()) != RenderRequest.create(
            other, RenderSettings()
        )

    def test_unwritable_script_removes_scratch_dir(self, video):
        def writer(scratch_dir, video_path, settings):
            raise PermissionError("read-only folder")

        with pytest.raises(ConfigurationError, match="read-only folder"):
            RenderRequest.create(video, RenderSettings(), script_writer=writer)
        assert not list(video.parent.glob(".blurpipe-*"))

    def test_uncreatable_scratch_dir(self, video):
        with patch("blurpipe.rendering.create_scratch_dir", side_effect=OSError("disk full")):
            with pytest.raises(ConfigurationError, match="disk full"):
                RenderRequest.create(video, RenderSettings())

    @pytest.mark.parametrize("path", ["", "/"])
    def test_malformed_input(self, path):
        with pytest.raises(MalformedPathError):
            RenderRequest.create(Path(path), RenderSettings())


class TestRenderVideo:
    def test_success_reports_and_cleans(self, video, toolchain, capsys):
        request = RenderRequest.create(video, RenderSettings())
        runner_cls = mock_runner(ok_result())

        with patch("blurpipe.rendering.PipelineRunner", runner_cls):
            result = render_video(request, toolchain=toolchain, interactive=False)

        assert result.success is True
        cmd = runner_cls.return_value.run.call_args.args[0]
        assert cmd.vspipe_args[0] == str(request.script_path)
        assert cmd.output_filename == str(request.output_path)
        assert not request.script_path.parent.exists()

        err = capsys.readouterr().err
        assert "Finished processing clip.mp4 to" in err
        assert "1.5s" in err

    def test_failure_raises_and_keeps_temp(self, video, toolchain):
        request = RenderRequest.create(video, RenderSettings())

        with patch("blurpipe.rendering.PipelineRunner", mock_runner(failed_result())):
            with pytest.raises(RenderFailedError) as exc_info:
                render_video(request, toolchain=toolchain, interactive=False)

        assert exc_info.value.result.failed_stage is PipelineStage.TRANSCODER
        assert request.script_path.exists()

    def test_runner_gets_interactive_flag(self, video, toolchain):
        request = RenderRequest.create(video, RenderSettings())
        runner_cls = mock_runner(ok_result())

        with patch("blurpipe.rendering.PipelineRunner", runner_cls):
            render_video(request, toolchain=toolchain, interactive=True)

        assert runner_cls.call_args.kwargs["interactive"] is True


class TestRenderQueue:
    def test_processes_in_order_then_clears(self, tmp_path, toolchain):
        videos = []
        for name in ("b.mp4", "a.mp4", "c.mp4"):
            path = tmp_path / name
            path.write_bytes(b"")
            videos.append(path)

        queue = RenderQueue(toolchain=toolchain, interactive=False)
        for path in videos:
            queue.queue_render(RenderRequest.create(path, RenderSettings()))
        assert queue.renders_queued is True

        seen = []
        with patch(
            "blurpipe.rendering.render_video",
            side_effect=lambda request, **kwargs: seen.append(request.video_path) or ok_result(),
        ):
            results = queue.render_videos()

        assert seen == videos
        assert len(results) == 3
        assert queue.queue == []
        assert queue.renders_queued is False

    def test_empty_queue_is_noop(self):
        assert RenderQueue().render_videos() == []

    def test_failure_stops_queue(self, tmp_path, toolchain):
        queue = RenderQueue(toolchain=toolchain, interactive=False)
        for name in ("one.mp4", "two.mp4"):
            path = tmp_path / name
            path.write_bytes(b"")
            queue.queue_render(RenderRequest.create(path, RenderSettings()))

        render = MagicMock(side_effect=RenderFailedError("boom"))
        with patch("blurpipe.rendering.render_video", render):
            with pytest.raises(RenderFailedError):
                queue.render_videos()

        assert render.call_count == 1
        assert len(queue.queue) == 2

    def test_discard_removes_pending_temp_dirs(self, video, toolchain):
        queue = RenderQueue(toolchain=toolchain)
        request = RenderRequest.create(video, RenderSettings())
        queue.queue_render(request)

        queue.discard()

        assert not request.script_path.parent.exists()
        assert queue.queue == []
        assert queue.renders_queued is False


def test_format_time():
    assert format_time(4.3) == "4.3s"
    assert format_time(125) == "2m 5.0s"
    assert format_time(3725) == "1h 2m 5.0s"
