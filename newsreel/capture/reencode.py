"""
Optional MP4 conversion of a finished capture.

Failures never lose the capture: the original result is returned and the
failure is logged.
"""

import logging
from typing import Optional

from ..core.config import Settings, get_settings
from ..schemas.capture import CaptureResult
from .encoders import candidate_for_mime
from .ffmpeg_runner import FFmpegError, FFmpegTimeout, convert_to_mp4

logger = logging.getLogger(__name__)

MP4_MIME = "video/mp4"


class Mp4Reencoder:
    """Converter for CaptureController producing H.264 MP4 output."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def __call__(self, result: CaptureResult) -> CaptureResult:
        if result.still_frame:
            return result

        candidate = candidate_for_mime(result.mime_type)
        extension = candidate.extension if candidate else result.filename.rsplit(".", 1)[-1]

        try:
            data = convert_to_mp4(
                result.data,
                extension,
                ffmpeg_binary=self.settings.ffmpeg_binary,
                preset=self.settings.x264_preset,
                crf=self.settings.crf,
                timeout_seconds=self.settings.reencode_timeout_seconds,
            )
        except (FFmpegError, FFmpegTimeout, OSError) as e:
            logger.warning(f"MP4 re-encode failed, keeping {result.mime_type} capture: {e}")
            return result

        stem = result.filename.rsplit(".", 1)[0]
        return result.model_copy(
            update={
                "data": data,
                "mime_type": MP4_MIME,
                "filename": f"{stem}.mp4",
                "reencoded": True,
            }
        )
