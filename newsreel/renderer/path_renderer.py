"""
Map Path Frame Renderer

Draws the cached map background, then the traversal up to
``distance = total_length * progress`` using one of three strategies.
Each strategy is a plain function registered in PATH_STYLES; all of them
sample through PathGeometry, so their heads agree for a given distance.
"""

import logging
import math
from typing import Callable, Dict, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter

from ..motion_engine.geometry import GeometryUnderflow, PathGeometry
from ..motion_engine.timeline import compute_progress
from ..schemas.path import AnimationStyleConfig, PathStyle
from .assets import ImageSource, fit_cover, load_image
from .surface import RasterSurface, parse_color, stroke_dashed, stroke_polyline, with_alpha

logger = logging.getLogger(__name__)

TRAIL_LENGTH = 100.0
TRAIL_STEP = 5.0
TRAVEL_DASH = (10, 5)
MARKER_RADIUS = 8
MARKER_GLOW_BLUR = 5

# progress gained per preview tick at speed 1.0
PREVIEW_STEP = 0.01

StyleRenderer = Callable[[RasterSurface, PathGeometry, float, AnimationStyleConfig], None]


def path_total_frames(speed: float) -> int:
    """Frames needed to traverse the path at PREVIEW_STEP * speed per frame."""
    return max(1, math.ceil(round(1 / (PREVIEW_STEP * speed), 6)))


def draw_glowing_trail(
    surface: RasterSurface,
    geometry: PathGeometry,
    distance: float,
    style: AnimationStyleConfig,
) -> None:
    """Fading segments over a trailing window; alpha 0 at the tail, 1 at the head."""
    tail = max(0.0, distance - TRAIL_LENGTH)
    span = distance - tail
    if span <= 0:
        return

    samples = []
    d = tail
    while d < distance:
        samples.append(d)
        d += TRAIL_STEP
    samples.append(distance)

    layer = surface.new_layer()
    draw = ImageDraw.Draw(layer)
    for start, end in zip(samples, samples[1:]):
        alpha = (start - tail) / span
        stroke_polyline(
            draw,
            [geometry.point_at_distance(start), geometry.point_at_distance(end)],
            fill=with_alpha(style.color, alpha),
            width=style.thickness,
        )
    head = geometry.point_at_distance(distance)
    radius = max(1.0, style.thickness / 2)
    draw.ellipse(
        (head.x - radius, head.y - radius, head.x + radius, head.y + radius),
        fill=with_alpha(style.color, 1.0),
    )
    surface.composite(layer)


def draw_dashed_travel(
    surface: RasterSurface,
    geometry: PathGeometry,
    distance: float,
    style: AnimationStyleConfig,
) -> None:
    """Dashed stroke from the start to the current distance; nothing beyond it."""
    layer = surface.new_layer()
    draw = ImageDraw.Draw(layer)
    stroke_dashed(
        draw,
        geometry.points_until(distance),
        TRAVEL_DASH,
        fill=with_alpha(style.color, 1.0),
        width=style.thickness,
    )
    surface.composite(layer)


def draw_moving_dot(
    surface: RasterSurface,
    geometry: PathGeometry,
    distance: float,
    style: AnimationStyleConfig,
) -> None:
    """Solid stroke to the current distance, then a glowing marker at its head."""
    color = with_alpha(style.color, 1.0)
    head = geometry.point_at_distance(distance)
    marker = (
        head.x - MARKER_RADIUS,
        head.y - MARKER_RADIUS,
        head.x + MARKER_RADIUS,
        head.y + MARKER_RADIUS,
    )

    glow = surface.new_layer()
    ImageDraw.Draw(glow).ellipse(marker, fill=color)
    surface.composite(glow.filter(ImageFilter.GaussianBlur(MARKER_GLOW_BLUR)))

    layer = surface.new_layer()
    draw = ImageDraw.Draw(layer)
    stroke_polyline(draw, geometry.points_until(distance), fill=color, width=style.thickness)
    draw.ellipse(marker, fill=color)
    surface.composite(layer)


PATH_STYLES: Dict[PathStyle, StyleRenderer] = {
    PathStyle.GLOWING_TRAIL: draw_glowing_trail,
    PathStyle.DASHED_TRAVEL: draw_dashed_travel,
    PathStyle.MOVING_DOT: draw_moving_dot,
}


class PathRenderer:
    """
    Renderer for one path traversal.

    Takes a snapshot of the points and a copy of the style, so later edits
    in the editor do not leak into a capture that is already running. The
    map image is decoded and fitted once into a base frame.
    """

    def __init__(
        self,
        points: Sequence[Tuple[float, float]],
        style: AnimationStyleConfig,
        size: Tuple[int, int],
        background: Optional[ImageSource] = None,
        background_color: str = "#ffffff",
    ):
        self.geometry = PathGeometry(points)
        self.style = style.model_copy()
        self.size = size
        self.background_color = background_color
        self._base = self._build_base(load_image(background))

    def _build_base(self, image: Optional[Image.Image]) -> Image.Image:
        width, height = self.size
        base = Image.new("RGB", self.size, parse_color(self.background_color))
        if image is None:
            return base
        x, y, w, h = fit_cover(image.width, image.height, width, height)
        fitted = image.resize((max(1, round(w)), max(1, round(h))), Image.Resampling.LANCZOS)
        base.paste(fitted, (round(x), round(y)), fitted)
        return base

    @property
    def total_frames(self) -> int:
        return path_total_frames(self.style.speed)

    def new_surface(self) -> RasterSurface:
        return RasterSurface(self.size[0], self.size[1], self.background_color)

    def draw_progress(self, surface: RasterSurface, progress: float) -> float:
        """
        Draw the traversal at a progress value.

        Returns:
            The distance travelled

        Raises:
            GeometryUnderflow: If the path has fewer than 2 points
        """
        if not self.geometry.can_sample:
            raise GeometryUnderflow(
                f"path animation needs at least 2 points, got {len(self.geometry)}"
            )
        surface.paste_image(self._base)
        distance = self.geometry.distance_at_progress(progress)
        PATH_STYLES[self.style.style](surface, self.geometry, distance, self.style)
        return distance

    def draw(self, surface: RasterSurface, frame_index: int) -> float:
        return self.draw_progress(surface, compute_progress(frame_index, self.total_frames))

    def render(self, progress: float) -> Image.Image:
        surface = self.new_surface()
        self.draw_progress(surface, progress)
        return surface.snapshot()
