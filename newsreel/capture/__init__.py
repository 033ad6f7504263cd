"""
Capture pipeline

Steps a renderer frame by frame into an ffmpeg encoding sink:
- controller: CaptureController state machine
- scheduler: asyncio and manual frame schedulers
- sink: ffmpeg subprocess sink fed raw frames over stdin
- encoders: codec candidates and negotiation
- reencode: optional MP4 conversion
- export: blocking export_reveal / export_path entry points
"""

from .controller import CaptureBusyError, CaptureController, CaptureJob, CaptureState
from .encoders import CODEC_CANDIDATES, CaptureError, CodecCandidate, UnsupportedEncodingError
from .export import export_path, export_reveal, run_capture
from .scheduler import AsyncioFrameScheduler, FrameScheduler, ManualFrameScheduler
from .sink import CaptureSink, FFmpegSink, FFmpegSinkFactory, SinkError, SinkOpenError

__all__ = [
    "CaptureBusyError",
    "CaptureController",
    "CaptureJob",
    "CaptureState",
    "CODEC_CANDIDATES",
    "CaptureError",
    "CodecCandidate",
    "UnsupportedEncodingError",
    "export_path",
    "export_reveal",
    "run_capture",
    "AsyncioFrameScheduler",
    "FrameScheduler",
    "ManualFrameScheduler",
    "CaptureSink",
    "FFmpegSink",
    "FFmpegSinkFactory",
    "SinkError",
    "SinkOpenError",
]
