"""
Background asset loading.

Images arrive as data URIs (from the upload form), file paths or raw
bytes. They are decoded once per renderer; a decode failure is logged and
reported as None so the caller can substitute the procedural placeholder.
"""

import base64
import io
import logging
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ImageSource = Union[str, bytes, Path, Image.Image]


class AssetLoadError(Exception):
    """Raised when an image source cannot be read or decoded."""

    pass


def decode_data_uri(uri: str) -> bytes:
    """
    Decode a ``data:`` URI into its payload bytes.

    Supports both base64 and percent-encoded payloads.

    Raises:
        AssetLoadError: If the URI is malformed
    """
    if not uri.startswith("data:"):
        raise AssetLoadError("not a data URI")
    header, sep, payload = uri.partition(",")
    if not sep:
        raise AssetLoadError("data URI has no payload separator")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (ValueError, TypeError) as e:
            raise AssetLoadError(f"invalid base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def _read_source(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, bytes):
        data = source
    elif isinstance(source, str) and source.startswith("data:"):
        data = decode_data_uri(source)
    else:
        try:
            data = Path(source).read_bytes()
        except OSError as e:
            raise AssetLoadError(f"cannot read {source}: {e}") from e
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise AssetLoadError(f"cannot decode image: {e}") from e
    return image


def load_image(source: Optional[ImageSource]) -> Optional[Image.Image]:
    """
    Decode an image source into an RGBA image.

    Args:
        source: Data URI, file path, raw bytes, PIL image, or None

    Returns:
        Decoded RGBA image, or None when no source was given or decoding
        failed (the failure is logged)
    """
    if source is None:
        return None
    try:
        image = _read_source(source)
    except AssetLoadError as e:
        logger.warning(f"Background image failed to load, using placeholder: {e}")
        return None
    if image.width == 0 or image.height == 0:
        logger.warning("Background image has zero size, using placeholder")
        return None
    logger.debug(f"Loaded background image {image.width}x{image.height} ({image.mode})")
    return image.convert("RGBA")


def fit_cover(
    src_width: float,
    src_height: float,
    dst_width: float,
    dst_height: float,
) -> Tuple[float, float, float, float]:
    """
    Rectangle that covers the destination while preserving aspect ratio.

    A source wider than the destination is fitted to the height and
    centred horizontally; otherwise it is fitted to the width and centred
    vertically.

    Returns:
        (x, y, width, height) of the placed source in destination pixels
    """
    src_aspect = src_width / src_height
    dst_aspect = dst_width / dst_height
    if src_aspect > dst_aspect:
        height = dst_height
        width = dst_height * src_aspect
        return ((dst_width - width) / 2, 0.0, width, height)
    width = dst_width
    height = dst_width / src_aspect
    return (0.0, (dst_height - height) / 2, width, height)
