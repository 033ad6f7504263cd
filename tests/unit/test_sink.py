"""
Unit tests for capture.sink module.

FFmpegSink only needs a process that reads stdin and writes stdout, so
the plumbing is exercised with ``cat`` and ``sh`` instead of ffmpeg.
"""

import shutil
import threading

import pytest

from newsreel.capture.encoders import CODEC_CANDIDATES, UnsupportedEncodingError
from newsreel.capture.sink import FFmpegSink, FFmpegSinkFactory, SinkError, SinkOpenError, build_capture_command
from newsreel.core.config import get_settings
from newsreel.renderer.surface import RasterSurface

pytestmark = pytest.mark.skipif(shutil.which("cat") is None or shutil.which("sh") is None, reason="needs POSIX cat/sh")

VP9 = CODEC_CANDIDATES[0]


class Events:
    """Thread-safe record of sink callbacks."""

    def __init__(self):
        self.chunks = []
        self.errors = []
        self.order = []
        self.stopped = threading.Event()

    def on_chunk(self, chunk):
        self.chunks.append(chunk)
        self.order.append("chunk")

    def on_error(self, error):
        self.errors.append(error)
        self.order.append("error")

    def on_stopped(self):
        self.order.append("stopped")
        self.stopped.set()


def open_sink(command, events) -> FFmpegSink:
    return FFmpegSink(command, VP9, events.on_chunk, events.on_error, events.on_stopped)


class TestBuildCaptureCommand:

    def test_raw_input_and_pipe_output(self):
        cmd = build_capture_command("ffmpeg", (800, 600), 30, VP9)
        assert cmd[:1] == ["ffmpeg"]
        assert cmd[cmd.index("-f") + 1] == "rawvideo"
        assert cmd[cmd.index("-pix_fmt") + 1] == "rgb24"
        assert cmd[cmd.index("-s") + 1] == "800x600"
        assert cmd[cmd.index("-framerate") + 1] == "30"
        assert cmd[cmd.index("-i") + 1] == "pipe:0"
        assert cmd[-1] == "pipe:1"
        assert "libvpx-vp9" in cmd


class TestFFmpegSink:
    """Tests for the subprocess sink plumbing."""

    def test_frames_stream_back(self):
        """Test every written frame comes back as chunk data, then stopped fires."""
        events = Events()
        sink = open_sink(["cat"], events)
        surface = RasterSurface(4, 2, "#ff0000")
        sink.capture_frame(surface)
        sink.capture_frame(surface)
        sink.stop()

        assert events.stopped.wait(10)
        assert b"".join(events.chunks) == surface.to_rgb_bytes() * 2
        assert events.errors == []
        assert events.order[-1] == "stopped"
        assert sink.frames_written == 2
        assert sink.mime_type == VP9.mime_type

    def test_nonzero_exit_reports_error_then_stopped(self):
        events = Events()
        sink = open_sink(["sh", "-c", "cat >/dev/null; echo bad input >&2; exit 3"], events)
        sink.capture_frame(RasterSurface(2, 2))
        sink.stop()

        assert events.stopped.wait(10)
        assert len(events.errors) == 1
        assert isinstance(events.errors[0], SinkError)
        assert "code 3" in str(events.errors[0])
        assert "bad input" in str(events.errors[0])
        assert events.order == ["error", "stopped"]

    def test_broken_pipe_reported_once(self):
        """Test writing to an exited encoder reports a single error."""
        events = Events()
        sink = open_sink(["sh", "-c", "exit 1"], events)
        sink.process.wait()
        surface = RasterSurface(64, 64)
        for _ in range(5):
            sink.capture_frame(surface)
        sink.stop()

        assert events.stopped.wait(10)
        assert len(events.errors) == 1
        assert events.order[-1] == "stopped"

    def test_abort_kills_process(self):
        events = Events()
        sink = open_sink(["sh", "-c", "sleep 30"], events)
        sink.abort()
        assert events.stopped.wait(10)
        assert sink.process.poll() is not None

    def test_missing_binary(self):
        with pytest.raises(SinkOpenError):
            open_sink(["/nonexistent/newsreel-ffmpeg"], Events())


class TestFFmpegSinkFactory:

    def test_no_supported_codec(self):
        factory = FFmpegSinkFactory(is_supported=lambda candidate: False)
        with pytest.raises(UnsupportedEncodingError):
            factory.open((8, 8), 30, print, print, print)

    def test_open_failure_is_unsupported_encoding(self, monkeypatch):
        """Test a binary that cannot start surfaces as UnsupportedEncodingError."""
        monkeypatch.setenv("NEWSREEL_FFMPEG_BINARY", "/nonexistent/newsreel-ffmpeg")
        get_settings.cache_clear()

        factory = FFmpegSinkFactory(is_supported=lambda candidate: True)
        with pytest.raises(UnsupportedEncodingError):
            factory.open((8, 8), 30, print, print, print)
