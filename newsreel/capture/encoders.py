"""
Codec negotiation for the capture sink.

Candidates are tried in order and the first one the local ffmpeg can
encode wins. Each candidate carries the mime type reported to the caller
and the ffmpeg output arguments that produce a streamable container on
stdout.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .ffmpeg_runner import list_encoders

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Base class for capture pipeline failures."""

    pass


class UnsupportedEncodingError(CaptureError):
    """No codec candidate is supported, or the sink could not be opened."""

    pass


@dataclass(frozen=True)
class CodecCandidate:
    """One entry in the codec preference list."""

    mime_type: str
    encoder: str
    container: str          # ffmpeg muxer name
    extension: str
    codec_args: Tuple[str, ...] = ()
    muxer_args: Tuple[str, ...] = ()

    def output_args(self) -> List[str]:
        """ffmpeg arguments from the encoder selection through the output target."""
        return [
            "-c:v", self.encoder,
            *self.codec_args,
            *self.muxer_args,
            "-f", self.container,
            "pipe:1",
        ]


CODEC_CANDIDATES: Tuple[CodecCandidate, ...] = (
    CodecCandidate(
        mime_type="video/webm;codecs=vp9",
        encoder="libvpx-vp9",
        container="webm",
        extension="webm",
        codec_args=("-deadline", "realtime", "-cpu-used", "8", "-b:v", "4M", "-pix_fmt", "yuv420p"),
    ),
    CodecCandidate(
        mime_type="video/webm;codecs=vp8",
        encoder="libvpx",
        container="webm",
        extension="webm",
        codec_args=("-deadline", "realtime", "-cpu-used", "8", "-b:v", "4M", "-pix_fmt", "yuv420p"),
    ),
    CodecCandidate(
        mime_type="video/mp4;codecs=avc1",
        encoder="libx264",
        container="mp4",
        extension="mp4",
        codec_args=("-preset", "ultrafast", "-pix_fmt", "yuv420p"),
        # mp4 cannot seek back on a pipe, so write a fragmented file
        muxer_args=("-movflags", "frag_keyframe+empty_moov+default_base_moof"),
    ),
    CodecCandidate(
        mime_type="video/x-matroska;codecs=mjpeg",
        encoder="mjpeg",
        container="matroska",
        extension="mkv",
        codec_args=("-q:v", "3", "-pix_fmt", "yuvj420p"),
    ),
)


def ffmpeg_support_probe(ffmpeg_binary: str = "ffmpeg") -> Callable[[CodecCandidate], bool]:
    """Support check backed by the encoders compiled into ffmpeg_binary."""
    def is_supported(candidate: CodecCandidate) -> bool:
        return candidate.encoder in list_encoders(ffmpeg_binary)

    return is_supported


def select_candidate(
    is_supported: Callable[[CodecCandidate], bool],
    candidates: Iterable[CodecCandidate] = CODEC_CANDIDATES,
) -> CodecCandidate:
    """
    First candidate the probe accepts.

    Raises:
        UnsupportedEncodingError: If no candidate is supported
    """
    tried: List[str] = []
    for candidate in candidates:
        if is_supported(candidate):
            logger.info(f"Selected codec {candidate.mime_type} ({candidate.encoder})")
            return candidate
        tried.append(candidate.mime_type)
    raise UnsupportedEncodingError(f"No supported codec among: {', '.join(tried) or 'none'}")


def candidate_for_mime(mime_type: str) -> Optional[CodecCandidate]:
    for candidate in CODEC_CANDIDATES:
        if candidate.mime_type == mime_type:
            return candidate
    return None
