"""
Real-time capture sink backed by an ffmpeg subprocess.

Raw rgb24 frames are written to ffmpeg's stdin at the nominal frame rate;
the encoded container is streamed back on stdout and handed to the
on_chunk callback as it arrives. Reader threads never touch controller
state directly: the callbacks they invoke are expected to marshal onto the
scheduler thread.

Event order per sink: any number of on_chunk calls, at most one on_error,
then exactly one on_stopped.
"""

import logging
import subprocess
import threading
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

from ..core.config import Settings, get_settings
from ..renderer.surface import RasterSurface
from .encoders import CodecCandidate, UnsupportedEncodingError, ffmpeg_support_probe, select_candidate
from .ffmpeg_runner import kill_process_group

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
STDERR_TAIL_LINES = 20

ChunkCallback = Callable[[bytes], None]
ErrorCallback = Callable[[Exception], None]
StoppedCallback = Callable[[], None]


class SinkOpenError(UnsupportedEncodingError):
    """The encoder process could not be started."""

    pass


class SinkError(Exception):
    """Runtime failure of an open sink."""

    pass


class CaptureSink:
    """Interface for sinks driven by CaptureController."""

    mime_type: str = "application/octet-stream"
    extension: str = "bin"

    def capture_frame(self, surface: RasterSurface) -> None:
        """Encode whatever is currently drawn on surface."""
        raise NotImplementedError

    def stop(self) -> None:
        """Flush and close; on_stopped fires once everything is delivered."""
        raise NotImplementedError

    def abort(self) -> None:
        """Tear down without waiting for pending output."""
        raise NotImplementedError


def build_capture_command(
    ffmpeg_binary: str,
    size: Tuple[int, int],
    fps: int,
    candidate: CodecCandidate,
) -> List[str]:
    """ffmpeg command reading raw rgb24 frames on stdin and streaming the container to stdout."""
    width, height = size
    return [
        ffmpeg_binary,
        "-hide_banner",
        "-loglevel", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-framerate", str(fps),
        "-i", "pipe:0",
        "-an",
        *candidate.output_args(),
    ]


class FFmpegSink(CaptureSink):
    """One ffmpeg encoder process for one capture session."""

    def __init__(
        self,
        command: List[str],
        candidate: CodecCandidate,
        on_chunk: ChunkCallback,
        on_error: ErrorCallback,
        on_stopped: StoppedCallback,
    ):
        self.command = command
        self.candidate = candidate
        self.mime_type = candidate.mime_type
        self.extension = candidate.extension
        self._on_chunk = on_chunk
        self._on_error = on_error
        self._on_stopped = on_stopped

        self._lock = threading.Lock()
        self._error_reported = False
        self._closed = False
        self._stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self.frames_written = 0

        logger.debug(f"Capture command: {' '.join(command)}")
        try:
            self.process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise SinkOpenError(f"Failed to start encoder {command[0]}: {e}") from e

        self._stderr_thread = threading.Thread(
            target=self._read_stderr, name="newsreel-sink-stderr", daemon=True
        )
        self._stdout_thread = threading.Thread(
            target=self._read_stdout, name="newsreel-sink-stdout", daemon=True
        )
        self._stderr_thread.start()
        self._stdout_thread.start()

    def _report_error(self, error: Exception) -> None:
        with self._lock:
            if self._error_reported:
                return
            self._error_reported = True
        logger.warning(f"Capture sink error: {error}")
        self._on_error(error)

    def _read_stderr(self) -> None:
        for raw in iter(self.process.stderr.readline, b""):
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self._stderr_tail.append(line)
        self.process.stderr.close()

    def _read_stdout(self) -> None:
        stdout = self.process.stdout
        while True:
            chunk = stdout.read1(CHUNK_SIZE)
            if not chunk:
                break
            logger.debug(f"Encoded chunk: {len(chunk)} bytes")
            self._on_chunk(chunk)
        stdout.close()

        returncode = self.process.wait()
        self._stderr_thread.join()
        if returncode != 0:
            detail = " | ".join(self._stderr_tail)
            self._report_error(SinkError(f"Encoder exited with code {returncode}: {detail}"))
        self._on_stopped()

    def capture_frame(self, surface: RasterSurface) -> None:
        if self._closed:
            return
        try:
            self.process.stdin.write(surface.to_rgb_bytes())
            self.frames_written += 1
        except (BrokenPipeError, ValueError, OSError) as e:
            self._close_stdin()
            self._report_error(SinkError(f"Encoder stopped accepting frames: {e}"))

    def _close_stdin(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.process.stdin.close()
        except (BrokenPipeError, OSError) as e:
            logger.debug(f"Encoder stdin close failed: {e}")

    def stop(self) -> None:
        logger.debug(f"Stopping sink after {self.frames_written} frames")
        self._close_stdin()

    def abort(self) -> None:
        self._close_stdin()
        if self.process.poll() is None:
            kill_process_group(self.process)


class FFmpegSinkFactory:
    """
    Opens FFmpegSink instances with the first codec the local ffmpeg supports.

    Args:
        settings: Settings providing the ffmpeg binary
        is_supported: Override for the codec probe
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        is_supported: Optional[Callable[[CodecCandidate], bool]] = None,
    ):
        self.settings = settings or get_settings()
        self.is_supported = is_supported or ffmpeg_support_probe(self.settings.ffmpeg_binary)

    def open(
        self,
        size: Tuple[int, int],
        fps: int,
        on_chunk: ChunkCallback,
        on_error: ErrorCallback,
        on_stopped: StoppedCallback,
    ) -> FFmpegSink:
        """
        Raises:
            UnsupportedEncodingError: If no codec is supported or ffmpeg cannot start
        """
        candidate = select_candidate(self.is_supported)
        command = build_capture_command(self.settings.ffmpeg_binary, size, fps, candidate)
        return FFmpegSink(command, candidate, on_chunk, on_error, on_stopped)
