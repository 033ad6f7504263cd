"""
Raster Surface

A Pillow RGB image shared by the frame renderer (single writer per tick)
and the capture sink (single reader per tick), plus the small set of 2-D
drawing primitives the effects need: affine placement, layered opacity,
dashed and round-capped strokes.
"""

import io
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

Color = Tuple[int, int, int]
Coord = Tuple[float, float]


@dataclass(frozen=True)
class Affine:
    """
    2-D affine matrix [[a, b, c], [d, e, f], [0, 0, 1]].

    Composition follows canvas semantics: ``m @ n`` applies n first, so
    ``translate(cx, cy) @ scale(z) @ translate(-cx, -cy)`` scales about
    the centre.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0
    e: float = 1.0
    f: float = 0.0

    @classmethod
    def translate(cls, tx: float, ty: float) -> "Affine":
        return cls(1.0, 0.0, tx, 0.0, 1.0, ty)

    @classmethod
    def scale(cls, sx: float, sy: Optional[float] = None) -> "Affine":
        return cls(sx, 0.0, 0.0, 0.0, sx if sy is None else sy, 0.0)

    @classmethod
    def rotate(cls, degrees: float) -> "Affine":
        rad = math.radians(degrees)
        cos, sin = math.cos(rad), math.sin(rad)
        return cls(cos, -sin, 0.0, sin, cos, 0.0)

    def __matmul__(self, other: "Affine") -> "Affine":
        return Affine(
            self.a * other.a + self.b * other.d,
            self.a * other.b + self.b * other.e,
            self.a * other.c + self.b * other.f + self.c,
            self.d * other.a + self.e * other.d,
            self.d * other.b + self.e * other.e,
            self.d * other.c + self.e * other.f + self.f,
        )

    def apply(self, x: float, y: float) -> Coord:
        return (self.a * x + self.b * y + self.c, self.d * x + self.e * y + self.f)

    def inverse(self) -> "Affine":
        det = self.a * self.e - self.b * self.d
        if det == 0:
            raise ValueError("affine matrix is not invertible")
        return Affine(
            self.e / det,
            -self.b / det,
            (self.b * self.f - self.c * self.e) / det,
            -self.d / det,
            self.a / det,
            (self.c * self.d - self.a * self.f) / det,
        )

    def coefficients(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)


def background_transform(
    width: int,
    height: int,
    zoom: float = 1.0,
    pan_x: float = 0.0,
    pan_y: float = 0.0,
    rotation: float = 0.0,
) -> Affine:
    """Translate to centre, rotate, scale by zoom, translate by pan, translate back."""
    cx, cy = width / 2, height / 2
    return (
        Affine.translate(cx, cy)
        @ Affine.rotate(rotation)
        @ Affine.scale(zoom)
        @ Affine.translate(pan_x, pan_y)
        @ Affine.translate(-cx, -cy)
    )


def parse_color(value: str) -> Color:
    return ImageColor.getrgb(value)[:3]


def with_alpha(color: str, alpha: float) -> Tuple[int, int, int, int]:
    r, g, b = parse_color(color)
    return (r, g, b, int(round(255 * max(0.0, min(1.0, alpha)))))


@lru_cache(maxsize=32)
def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.ImageFont:
    """
    Bold sans font at a pixel size.

    Tries the configured font, then common system bold fonts, then the
    Pillow default font scaled to size.
    """
    candidates = [font_path] if font_path else []
    candidates += ["DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"]
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class RasterSurface:
    """
    Fixed-size RGB drawing target.

    Overlays are drawn on transparent RGBA layers and composited with an
    opacity, which gives canvas-style globalAlpha semantics.
    """

    def __init__(self, width: int, height: int, background: str = "#000000"):
        if width <= 0 or height <= 0:
            raise ValueError(f"surface size must be positive, got {width}x{height}")
        self.image = Image.new("RGB", (width, height), parse_color(background))

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def clear(self, color: str) -> None:
        self.image.paste(parse_color(color), (0, 0, self.width, self.height))

    def new_layer(self) -> Image.Image:
        return Image.new("RGBA", self.size, (0, 0, 0, 0))

    def composite(self, layer: Image.Image, opacity: float = 1.0) -> None:
        """Blend an RGBA layer onto the surface, scaling its alpha by opacity."""
        if opacity <= 0:
            return
        alpha = layer.getchannel("A")
        if opacity < 1:
            alpha = alpha.point(lambda v: int(round(v * opacity)))
        self.image.paste(layer.convert("RGB"), (0, 0), alpha)

    def draw_transformed(self, source: Image.Image, matrix: Affine) -> None:
        """
        Draw source (in its own pixel space) through matrix onto the surface.

        Pixels the transformed source does not cover are left untouched.
        """
        rgba = source if source.mode == "RGBA" else source.convert("RGBA")
        layer = rgba.transform(
            self.size,
            Image.Transform.AFFINE,
            data=matrix.inverse().coefficients(),
            resample=Image.Resampling.BICUBIC,
            fillcolor=(0, 0, 0, 0),
        )
        self.composite(layer)

    def paste_image(self, image: Image.Image) -> None:
        """Replace the surface content with an image of the same size."""
        self.image.paste(image.convert("RGB"), (0, 0))

    def to_rgb_bytes(self) -> bytes:
        """Raw rgb24 frame, row-major, as fed to the capture sink."""
        return self.image.tobytes()

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def snapshot(self) -> Image.Image:
        return self.image.copy()


# =============================================================================
# Stroke helpers (operate on ImageDraw of an RGBA layer)
# =============================================================================


def stroke_polyline(
    draw: ImageDraw.ImageDraw,
    points: Sequence[Coord],
    fill,
    width: int,
) -> None:
    """Solid polyline with round joins and caps."""
    if len(points) < 2:
        return
    draw.line([tuple(p) for p in points], fill=fill, width=width, joint="curve")
    radius = width / 2
    if radius >= 1:
        for x, y in (points[0], points[-1]):
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)


def dash_segments(points: Sequence[Coord], pattern: Sequence[float]) -> List[Tuple[Coord, Coord]]:
    """
    Split a polyline into the "on" pieces of a dash pattern.

    The pattern phase carries across vertices, as a canvas dashed path does.
    """
    if len(points) < 2 or not pattern or sum(pattern) <= 0:
        return []

    pieces: List[Tuple[Coord, Coord]] = []
    index = 0
    remaining = pattern[0]
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        length = math.hypot(x1 - x0, y1 - y0)
        if length == 0:
            continue
        ux, uy = (x1 - x0) / length, (y1 - y0) / length
        position = 0.0
        while position < length:
            step = min(remaining, length - position)
            if index % 2 == 0:
                start = (x0 + ux * position, y0 + uy * position)
                end = (x0 + ux * (position + step), y0 + uy * (position + step))
                pieces.append((start, end))
            position += step
            remaining -= step
            if remaining <= 1e-9:
                index = (index + 1) % len(pattern)
                remaining = pattern[index]
    return pieces


def stroke_dashed(
    draw: ImageDraw.ImageDraw,
    points: Sequence[Coord],
    pattern: Sequence[float],
    fill,
    width: int,
) -> None:
    for start, end in dash_segments(points, pattern):
        draw.line([start, end], fill=fill, width=width)
