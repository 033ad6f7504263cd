"""
FFmpeg Runner with Timeout Enforcement

Runs one-shot FFmpeg commands (encoder probing, MP4 conversion) with:
- Strict timeout enforcement
- Process group management for clean termination
- Detailed error reporting

The long-lived capture process is managed by capture.sink instead.
"""

import logging
import os
import re
import signal
import subprocess
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, List

logger = logging.getLogger(__name__)


class FFmpegTimeout(Exception):
    """Raised when FFmpeg exceeds the allowed timeout."""

    pass


class FFmpegError(Exception):
    """Raised when FFmpeg fails with a non-zero exit code or cannot start."""

    pass


def run_ffmpeg(cmd: List[str], timeout_seconds: int = 120) -> bytes:
    """
    Run an FFmpeg command to completion.

    The process runs in its own process group so a timeout can kill it
    together with any helpers it spawned.

    Args:
        cmd: Command as list of arguments
        timeout_seconds: Maximum allowed runtime in seconds

    Returns:
        Captured stdout bytes

    Raises:
        FFmpegTimeout: If FFmpeg exceeds the timeout
        FFmpegError: If FFmpeg cannot start or exits non-zero
    """
    logger.debug(f"FFmpeg command: {' '.join(cmd)}")

    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise FFmpegError(f"Failed to start {cmd[0]}: {e}") from e

    try:
        stdout, stderr = process.communicate(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        logger.warning(f"FFmpeg timeout after {timeout_seconds}s")
        kill_process_group(process)
        process.communicate()
        raise FFmpegTimeout(f"FFmpeg exceeded timeout of {timeout_seconds} seconds")

    if process.returncode != 0:
        stderr_text = stderr.decode("utf-8", errors="replace")
        error_msg = f"FFmpeg failed with code {process.returncode}"
        if stderr_text:
            error_msg += f": {stderr_text[-2000:]}"
        logger.error(error_msg)
        raise FFmpegError(error_msg)

    return stdout


def kill_process_group(process: subprocess.Popen) -> None:
    """
    Kill FFmpeg process and its entire process group.

    Uses SIGKILL to ensure immediate termination.
    Catches and logs any errors during termination.

    Args:
        process: The subprocess.Popen instance to kill
    """
    try:
        pgid = os.getpgid(process.pid)
        logger.info(f"Killing FFmpeg process group {pgid}")
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process already terminated")
    except OSError as e:
        logger.warning(f"Error killing process group: {e}")
        process.kill()


_ENCODER_LINE = re.compile(r"^\s*[VAS][A-Z.]{5}\s+(\S+)")


def parse_encoder_list(output: str) -> FrozenSet[str]:
    """
    Extract encoder names from ``ffmpeg -encoders`` output.

    Lines look like `` V....D libx264   libx264 H.264 / AVC ...``; the legend
    above the ``------`` separator is skipped.
    """
    names = set()
    in_table = False
    for line in output.splitlines():
        if line.strip().startswith("------"):
            in_table = True
            continue
        if not in_table:
            continue
        match = _ENCODER_LINE.match(line)
        if match:
            names.add(match.group(1))
    return frozenset(names)


@lru_cache(maxsize=8)
def list_encoders(ffmpeg_binary: str = "ffmpeg") -> FrozenSet[str]:
    """
    Encoders compiled into an ffmpeg binary. Probed once per binary.

    Returns:
        Encoder names, or an empty set when ffmpeg is unavailable
    """
    try:
        output = run_ffmpeg([ffmpeg_binary, "-hide_banner", "-encoders"], timeout_seconds=15)
    except (FFmpegError, FFmpegTimeout) as e:
        logger.warning(f"FFmpeg encoder probe failed: {e}")
        return frozenset()
    encoders = parse_encoder_list(output.decode("utf-8", errors="replace"))
    logger.debug(f"FFmpeg reports {len(encoders)} encoders")
    return encoders


def get_ffmpeg_version(ffmpeg_binary: str = "ffmpeg") -> str:
    """
    Version string of an ffmpeg binary, e.g. "6.1.1".

    Returns:
        Version string, or "unavailable" when ffmpeg cannot be run
    """
    try:
        output = run_ffmpeg([ffmpeg_binary, "-version"], timeout_seconds=5)
    except (FFmpegError, FFmpegTimeout):
        return "unavailable"
    first_line = output.decode("utf-8", errors="replace").splitlines()[0] if output else ""
    match = re.match(r"ffmpeg version (\S+)", first_line)
    return match.group(1) if match else first_line or "unknown"


def validate_ffmpeg_available(ffmpeg_binary: str = "ffmpeg") -> bool:
    """
    Check if FFmpeg is available and working.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return get_ffmpeg_version(ffmpeg_binary) != "unavailable"


def build_mp4_command(
    ffmpeg_binary: str,
    input_path: str,
    output_path: str,
    preset: str = "veryfast",
    crf: int = 23,
) -> List[str]:
    """
    Build the command converting a captured stream to H.264 MP4.

    Args:
        ffmpeg_binary: ffmpeg executable
        input_path: Captured stream on disk
        output_path: Path for output MP4
        preset: libx264 preset
        crf: Constant rate factor

    Returns:
        List of command arguments for subprocess
    """
    return [
        ffmpeg_binary,
        "-y",
        "-i", input_path,
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", str(crf),
        "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",
        "-an",
        output_path,
    ]


def convert_to_mp4(
    data: bytes,
    source_extension: str,
    ffmpeg_binary: str = "ffmpeg",
    preset: str = "veryfast",
    crf: int = 23,
    timeout_seconds: int = 120,
) -> bytes:
    """
    Convert an encoded stream to H.264 MP4.

    Args:
        data: Captured stream bytes
        source_extension: Extension matching the captured container ("webm", "mkv", ...)
        ffmpeg_binary: ffmpeg executable
        preset: libx264 preset
        crf: Constant rate factor
        timeout_seconds: Maximum conversion time

    Returns:
        MP4 bytes

    Raises:
        FFmpegError: If conversion fails or produces an empty file
        FFmpegTimeout: If conversion exceeds the timeout
    """
    with tempfile.TemporaryDirectory(prefix="newsreel_convert_") as tmp:
        source = Path(tmp) / f"capture.{source_extension}"
        target = Path(tmp) / "output.mp4"
        source.write_bytes(data)

        run_ffmpeg(
            build_mp4_command(ffmpeg_binary, str(source), str(target), preset, crf),
            timeout_seconds=timeout_seconds,
        )

        if not target.exists() or target.stat().st_size == 0:
            raise FFmpegError("MP4 conversion produced no output")
        converted = target.read_bytes()

    logger.info(f"Converted {len(data)} byte {source_extension} capture to {len(converted)} byte MP4")
    return converted
