"""
Capture Controller

Drives a frame-stepped render loop in lockstep with a real-time encoding
sink and turns the result into a CaptureResult.

State machine:

    idle -> priming -> recording -> finalizing -> done -> idle
    priming -> error -> idle  (no codec, sink open failure, draw failure)

Every tick draws exactly one logical frame and then hands the surface to
the sink, so the animation clock only advances when the scheduler fires,
never with wall time. Sink events arrive on reader threads and are
marshalled through the scheduler; anything carrying an outdated session id
is dropped.
"""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, List, Optional

from ..renderer.surface import RasterSurface
from ..schemas.animation import AnimationSpec
from ..schemas.capture import CaptureResult
from .encoders import CaptureError
from .scheduler import FrameScheduler
from .sink import CaptureSink

logger = logging.getLogger(__name__)

# the fallback still frame keeps the video mime type callers expect
STILL_FRAME_MIME = "video/mp4"
STILL_FRAME_EXTENSION = "mp4"

DrawFunc = Callable[[RasterSurface, int], Any]
CompleteCallback = Callable[[CaptureResult], None]
ProgressCallback = Callable[[float], None]
ErrorCallback = Callable[[Exception], None]
Converter = Callable[[CaptureResult], CaptureResult]


class CaptureState(str, Enum):
    IDLE = "idle"
    PRIMING = "priming"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    DONE = "done"
    ERROR = "error"


class CaptureBusyError(CaptureError):
    """start() called while a capture session is active."""

    pass


@dataclass(frozen=True)
class CaptureJob:
    """What to record: frame count, nominal rate and output naming."""

    total_frames: int
    fps: int
    filename_stem: str

    def __post_init__(self):
        if self.total_frames <= 0:
            raise ValueError(f"total_frames must be positive, got {self.total_frames}")
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")

    @classmethod
    def from_spec(cls, spec: AnimationSpec) -> "CaptureJob":
        return cls(total_frames=spec.total_frames, fps=spec.fps, filename_stem=spec.filename_stem)

    def filename(self, extension: str) -> str:
        return f"{self.filename_stem}.{extension}"


@dataclass
class CaptureSession:
    """Mutable state of one capture. Private to CaptureController."""

    id: int
    job: CaptureJob
    draw: DrawFunc
    on_complete: CompleteCallback
    on_progress: Optional[ProgressCallback] = None
    on_error: Optional[ErrorCallback] = None
    sink: Optional[CaptureSink] = None
    chunks: List[bytes] = field(default_factory=list)
    frame_index: int = 0
    frames_captured: int = 0
    stop_requested: bool = False
    sink_error: Optional[Exception] = None
    handle: Any = None

    @property
    def byte_count(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)


class CaptureController:
    """
    Owns one surface and at most one capture session at a time.

    Args:
        surface: Drawing target shared by the draw function and the sink
        scheduler: Frame scheduler; all callbacks run on its thread
        sink_factory: Object with open(size, fps, on_chunk, on_error, on_stopped)
        converter: Optional post-processing step (e.g. MP4 re-encode)

    Usage:
        controller = CaptureController(surface, scheduler, FFmpegSinkFactory())
        controller.start(CaptureJob.from_spec(spec), renderer.draw, on_complete=save)
    """

    def __init__(
        self,
        surface: RasterSurface,
        scheduler: FrameScheduler,
        sink_factory: Any,
        converter: Optional[Converter] = None,
    ):
        self.surface = surface
        self.scheduler = scheduler
        self.sink_factory = sink_factory
        self.converter = converter
        self._state = CaptureState.IDLE
        self._session: Optional[CaptureSession] = None
        self._ids = itertools.count(1)

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def _set_state(self, state: CaptureState) -> None:
        logger.debug(f"Capture state {self._state.value} -> {state.value}")
        self._state = state

    def _current(self, session_id: int) -> Optional[CaptureSession]:
        session = self._session
        if session is None or session.id != session_id:
            return None
        return session

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        job: CaptureJob,
        draw: DrawFunc,
        on_complete: CompleteCallback,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """
        Prime the surface, open the sink and schedule the first tick.

        Priming failures (draw errors, no supported codec, sink open
        failure) go to on_error and leave the controller idle. Without an
        on_error callback they are raised.

        Raises:
            CaptureBusyError: If a session is already active
        """
        if self._session is not None:
            raise CaptureBusyError(f"capture already in progress ({self._state.value})")

        session = CaptureSession(
            id=next(self._ids),
            job=job,
            draw=draw,
            on_complete=on_complete,
            on_progress=on_progress,
            on_error=on_error,
        )
        self._session = session
        self._set_state(CaptureState.PRIMING)
        logger.info(
            f"Starting capture {session.id}: {job.total_frames} frames at {job.fps} fps "
            f"into {self.surface.width}x{self.surface.height}"
        )

        post = self.scheduler.call_soon_threadsafe
        try:
            draw(self.surface, 0)
            session.sink = self.sink_factory.open(
                self.surface.size,
                job.fps,
                on_chunk=partial(post, self._on_chunk, session.id),
                on_error=partial(post, self._on_sink_error, session.id),
                on_stopped=partial(post, self._on_sink_stopped, session.id),
            )
        except Exception as e:
            self._fail(session, e)
            return

        self._set_state(CaptureState.RECORDING)
        session.handle = self.scheduler.request_frame(partial(self._tick, session.id))

    def stop(self) -> None:
        """Request cancellation; the next tick finalizes with whatever was captured."""
        session = self._session
        if session is None or self._state != CaptureState.RECORDING:
            return
        logger.info(f"Stop requested for capture {session.id} at frame {session.frame_index}")
        session.stop_requested = True

    def abort(self) -> None:
        """
        Tear the session down at once: kill the encoder and discard its output.

        For callers that will not drive the scheduler any further. No
        completion or error callback is invoked.
        """
        session = self._session
        if session is None:
            return
        logger.info(f"Aborting capture {session.id} at frame {session.frame_index}")
        if session.handle is not None:
            self.scheduler.cancel(session.handle)
            session.handle = None
        if session.sink is not None:
            session.sink.abort()
        self._session = None
        self._set_state(CaptureState.IDLE)

    # ------------------------------------------------------------------
    # Recording loop
    # ------------------------------------------------------------------

    def _tick(self, session_id: int) -> None:
        session = self._current(session_id)
        if session is None or self._state != CaptureState.RECORDING:
            return
        session.handle = None

        job = session.job
        if session.stop_requested or session.frame_index >= job.total_frames:
            self._begin_finalize(session)
            return

        index = session.frame_index
        try:
            session.draw(self.surface, index)
        except Exception as e:
            self._fail(session, e)
            return
        session.sink.capture_frame(self.surface)
        session.frames_captured += 1

        if session.on_progress is not None:
            session.on_progress(100.0 * index / job.total_frames)

        session.frame_index = index + 1
        # a sink error reported during capture_frame may already have moved us on
        if self._current(session_id) is session and self._state == CaptureState.RECORDING:
            session.handle = self.scheduler.request_frame(partial(self._tick, session.id))

    def _begin_finalize(self, session: CaptureSession) -> None:
        if session.handle is not None:
            self.scheduler.cancel(session.handle)
            session.handle = None
        self._set_state(CaptureState.FINALIZING)
        logger.info(
            f"Capture {session.id} finalizing after {session.frames_captured}/"
            f"{session.job.total_frames} frames"
        )
        session.sink.stop()

    # ------------------------------------------------------------------
    # Sink events (scheduler thread)
    # ------------------------------------------------------------------

    def _on_chunk(self, session_id: int, chunk: bytes) -> None:
        session = self._current(session_id)
        if session is None or self._state not in (CaptureState.RECORDING, CaptureState.FINALIZING):
            logger.debug(f"Dropping {len(chunk)} byte chunk for inactive capture {session_id}")
            return
        if chunk:
            session.chunks.append(chunk)

    def _on_sink_error(self, session_id: int, error: Exception) -> None:
        session = self._current(session_id)
        if session is None:
            return
        logger.warning(f"Capture {session_id} sink error, finalizing early: {error}")
        session.sink_error = error
        if self._state == CaptureState.RECORDING:
            self._begin_finalize(session)

    def _on_sink_stopped(self, session_id: int) -> None:
        session = self._current(session_id)
        if session is None:
            return
        if self._state == CaptureState.RECORDING:
            # encoder went away on its own
            if session.handle is not None:
                self.scheduler.cancel(session.handle)
                session.handle = None
            self._set_state(CaptureState.FINALIZING)
        if self._state == CaptureState.FINALIZING:
            self._finalize(session)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _finalize(self, session: CaptureSession) -> None:
        data = b"".join(session.chunks)
        job = session.job
        if not data:
            logger.warning(f"Capture {session.id} produced no data; delivering a still frame")
            result = CaptureResult(
                data=self.surface.to_png(),
                mime_type=STILL_FRAME_MIME,
                filename=job.filename(STILL_FRAME_EXTENSION),
                frame_count=session.frames_captured,
                still_frame=True,
            )
        else:
            result = CaptureResult(
                data=data,
                mime_type=session.sink.mime_type,
                filename=job.filename(session.sink.extension),
                frame_count=session.frames_captured,
            )
            logger.info(f"Capture {session.id} collected {len(data)} bytes ({result.mime_type})")
            if self.converter is not None:
                result = self._convert(session, result)

        self._set_state(CaptureState.DONE)
        self._session = None
        try:
            session.on_complete(result)
        finally:
            if self._state == CaptureState.DONE:
                self._set_state(CaptureState.IDLE)

    def _convert(self, session: CaptureSession, result: CaptureResult) -> CaptureResult:
        try:
            return self.converter(result)
        except Exception as e:
            logger.warning(f"Capture {session.id} conversion failed, keeping {result.mime_type}: {e}")
            return result

    def _fail(self, session: CaptureSession, error: Exception) -> None:
        self._set_state(CaptureState.ERROR)
        if session.handle is not None:
            self.scheduler.cancel(session.handle)
            session.handle = None
        if session.sink is not None:
            session.sink.abort()
        self._session = None
        logger.error(f"Capture {session.id} failed: {error}")
        try:
            if session.on_error is None:
                raise error
            session.on_error(error)
        finally:
            if self._state == CaptureState.ERROR:
                self._set_state(CaptureState.IDLE)
