"""
Root conftest for newsreel tests.

Provides:
- isolated_settings: settings cache reset with the export cache under tmp_path (autouse)
- temp_output_dir: Temporary directory for export output
- ffmpeg_available / require_ffmpeg: skip real-encoder tests without ffmpeg
- search_spec / spin_spec: small sample AnimationSpecs
- FakeSinkFactory: in-process capture sink for controller tests
"""
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest

from newsreel.capture.encoders import UnsupportedEncodingError
from newsreel.capture.sink import CaptureSink, SinkError
from newsreel.core.config import get_settings
from newsreel.renderer.surface import RasterSurface
from newsreel.schemas.animation import AnimationSpec


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Fresh settings per test, with the export cache inside tmp_path."""
    monkeypatch.setenv("NEWSREEL_CACHE_ROOT", str(tmp_path / "cache"))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def temp_output_dir():
    """
    Temporary directory for export output.

    Cleaned up automatically after each test.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="newsreel_test_"))
    yield temp_dir
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


@pytest.fixture
def ffmpeg_available() -> bool:
    """
    Check if FFmpeg is available in the environment.

    Returns True if ffmpeg command exists, False otherwise.
    """
    try:
        result = subprocess.run(
            ["ffmpeg", "-version"],
            capture_output=True,
            timeout=5
        )
        return result.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


@pytest.fixture
def require_ffmpeg(ffmpeg_available: bool):
    """Skip test if FFmpeg is not available."""
    if not ffmpeg_available:
        pytest.skip("FFmpeg not available")


@pytest.fixture
def search_spec() -> AnimationSpec:
    return AnimationSpec(label="Breaking News", effect="search", duration="5s", fps=60)


@pytest.fixture
def spin_spec() -> AnimationSpec:
    return AnimationSpec(label="Breaking News", effect="spin", duration="5s", fps=60)


# ============================================================================
# Fake capture sink
# ============================================================================


class FakeSink(CaptureSink):
    """
    Sink that "encodes" each frame to a short chunk.

    Events go through the callbacks handed over by the controller, so they
    are queued on the scheduler exactly like a real sink's reader threads.
    """

    mime_type = "video/webm;codecs=vp9"
    extension = "webm"

    def __init__(
        self,
        on_chunk,
        on_error,
        on_stopped,
        emit: bool = True,
        error_after: Optional[int] = None,
        tail_chunk: bytes = b"",
    ):
        self.on_chunk = on_chunk
        self.on_error = on_error
        self.on_stopped = on_stopped
        self.emit = emit
        self.error_after = error_after
        self.tail_chunk = tail_chunk
        self.first_pixels: List[int] = []
        self.stopped = False
        self.aborted = False
        self.failed = False

    def capture_frame(self, surface: RasterSurface) -> None:
        if self.failed:
            return
        self.first_pixels.append(surface.to_rgb_bytes()[0])
        if self.emit:
            self.on_chunk(b"frame%d;" % (len(self.first_pixels) - 1))
        if self.error_after is not None and len(self.first_pixels) >= self.error_after:
            self.failed = True
            self.on_error(SinkError("encoder crashed"))

    def stop(self) -> None:
        self.stopped = True
        if self.tail_chunk:
            self.on_chunk(self.tail_chunk)
        self.on_stopped()

    def abort(self) -> None:
        self.aborted = True


class FakeSinkFactory:
    """Records every sink it opens; fail_open simulates no supported codec."""

    def __init__(self, fail_open: bool = False, **sink_options):
        self.fail_open = fail_open
        self.sink_options = sink_options
        self.sinks: List[FakeSink] = []
        self.opened_with = []

    def open(self, size, fps, on_chunk, on_error, on_stopped) -> FakeSink:
        self.opened_with.append((size, fps))
        if self.fail_open:
            raise UnsupportedEncodingError("No supported codec among: fake")
        sink = FakeSink(on_chunk, on_error, on_stopped, **self.sink_options)
        self.sinks.append(sink)
        return sink

    @property
    def last(self) -> FakeSink:
        return self.sinks[-1]


@pytest.fixture
def fake_sink_factory():
    return FakeSinkFactory()
