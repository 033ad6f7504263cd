"""
Export entry points.

Wire a renderer, a CaptureController and an ffmpeg sink together and
block until the capture completes. Real-time exports run the frame loop
on an asyncio event loop at the nominal frame rate; fast exports step a
ManualFrameScheduler as quickly as the encoder accepts frames. Both draw
exactly the same frames.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence, Tuple

from ..core.config import Settings, get_settings
from ..motion_engine.geometry import GeometryUnderflow
from ..renderer.assets import ImageSource
from ..renderer.frame_renderer import HeadlineRenderer
from ..renderer.path_renderer import PathRenderer
from ..renderer.surface import RasterSurface
from ..schemas.animation import AnimationSpec
from ..schemas.capture import CaptureResult
from ..schemas.path import AnimationStyleConfig
from .controller import CaptureController, CaptureJob, Converter, DrawFunc, ProgressCallback
from .encoders import CaptureError
from .reencode import Mp4Reencoder
from .scheduler import AsyncioFrameScheduler, ManualFrameScheduler
from .sink import FFmpegSinkFactory

logger = logging.getLogger(__name__)


async def capture_async(
    surface: RasterSurface,
    job: CaptureJob,
    draw: DrawFunc,
    sink_factory: Any,
    converter: Optional[Converter] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> CaptureResult:
    """Run one real-time capture on the running event loop."""
    loop = asyncio.get_running_loop()
    done: asyncio.Future = loop.create_future()

    def complete(result: CaptureResult) -> None:
        if not done.done():
            done.set_result(result)

    def fail(error: Exception) -> None:
        if not done.done():
            done.set_exception(error)

    controller = CaptureController(surface, AsyncioFrameScheduler(job.fps, loop), sink_factory, converter)
    controller.start(job, draw, on_complete=complete, on_progress=on_progress, on_error=fail)
    try:
        return await done
    except asyncio.CancelledError:
        controller.abort()
        raise


def capture_manual(
    surface: RasterSurface,
    job: CaptureJob,
    draw: DrawFunc,
    sink_factory: Any,
    converter: Optional[Converter] = None,
    on_progress: Optional[ProgressCallback] = None,
    timeout: Optional[float] = None,
) -> CaptureResult:
    """
    Run one capture on a ManualFrameScheduler, stepping frames back to back.

    Raises:
        CaptureError: If the capture did not finish within timeout
    """
    scheduler = ManualFrameScheduler()
    controller = CaptureController(surface, scheduler, sink_factory, converter)
    outcome = {}

    controller.start(
        job,
        draw,
        on_complete=lambda result: outcome.setdefault("result", result),
        on_progress=on_progress,
        on_error=lambda error: outcome.setdefault("error", error),
    )
    if not scheduler.run_until(lambda: bool(outcome), timeout=timeout):
        controller.abort()
        raise CaptureError(f"capture did not finish within {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def run_capture(
    surface: RasterSurface,
    job: CaptureJob,
    draw: DrawFunc,
    sink_factory: Any,
    converter: Optional[Converter] = None,
    on_progress: Optional[ProgressCallback] = None,
    realtime: bool = True,
) -> CaptureResult:
    """Blocking capture, real-time on a fresh event loop or stepped manually."""
    if realtime:
        return asyncio.run(
            capture_async(surface, job, draw, sink_factory, converter, on_progress)
        )
    return capture_manual(surface, job, draw, sink_factory, converter, on_progress)


def _converter(reencode: Optional[bool], settings: Settings) -> Optional[Converter]:
    enabled = settings.reencode_to_mp4 if reencode is None else reencode
    return Mp4Reencoder(settings) if enabled else None


def export_reveal(
    spec: AnimationSpec,
    background: Optional[ImageSource] = None,
    settings: Optional[Settings] = None,
    sink_factory: Any = None,
    reencode: Optional[bool] = None,
    realtime: bool = True,
    on_progress: Optional[ProgressCallback] = None,
) -> CaptureResult:
    """
    Record a headline reveal to a video.

    Args:
        spec: Animation parameters
        background: Optional background image (data URI, path, bytes or PIL image)
        settings: Settings override
        sink_factory: Sink factory override (defaults to FFmpegSinkFactory)
        reencode: Convert to MP4 afterwards (defaults to settings.reencode_to_mp4)
        realtime: Run at the nominal frame rate instead of as fast as possible
        on_progress: Called with percent complete after every frame

    Returns:
        CaptureResult
    """
    settings = settings or get_settings()
    renderer = HeadlineRenderer(spec, background=background)
    job = CaptureJob.from_spec(spec)
    logger.info(
        f"Exporting {spec.effect.value} reveal '{spec.label}' "
        f"({spec.width}x{spec.height}, {spec.duration_seconds}s, {job.total_frames} frames)"
    )
    return run_capture(
        renderer.new_surface(),
        job,
        renderer.draw,
        sink_factory or FFmpegSinkFactory(settings),
        _converter(reencode, settings),
        on_progress,
        realtime,
    )


def export_path(
    points: Sequence[Tuple[float, float]],
    style: AnimationStyleConfig,
    background: Optional[ImageSource] = None,
    size: Optional[Tuple[int, int]] = None,
    settings: Optional[Settings] = None,
    sink_factory: Any = None,
    reencode: Optional[bool] = None,
    realtime: bool = True,
    on_progress: Optional[ProgressCallback] = None,
) -> CaptureResult:
    """
    Record a map path traversal to a video.

    Raises:
        GeometryUnderflow: If fewer than 2 points are given
    """
    settings = settings or get_settings()
    if len(points) < 2:
        raise GeometryUnderflow(f"path animation needs at least 2 points, got {len(points)}")

    size = size or (settings.map_width, settings.map_height)
    renderer = PathRenderer(points, style, size, background=background)
    job = CaptureJob(
        total_frames=renderer.total_frames,
        fps=settings.map_fps,
        filename_stem=f"map-animation-{style.style.value}",
    )
    logger.info(
        f"Exporting {style.style.value} path over {len(points)} points "
        f"({renderer.geometry.total_length():.0f}px, {job.total_frames} frames)"
    )
    return run_capture(
        renderer.new_surface(),
        job,
        renderer.draw,
        sink_factory or FFmpegSinkFactory(settings),
        _converter(reencode, settings),
        on_progress,
        realtime,
    )
