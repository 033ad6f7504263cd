"""
Headline Reveal Frame Renderer

Draws one frame of a reveal effect onto a RasterSurface:

  1. clear to the theme background colour
  2. background content (cover-fitted image, or the procedural placeholder)
     through the frame's zoom/pan/rotation transform
  3. phase-gated overlays, each at its own opacity and scale

Overlays are always composited after the background, whatever the phase.
"""

import logging
from typing import Optional

from PIL import Image, ImageDraw

from ..core.config import get_settings
from ..motion_engine.timeline import FrameState, RevealTimeline, timeline_for
from ..schemas.animation import HIGHLIGHT_COLOR, SEARCH_COLOR, AnimationSpec, RevealEffect
from .assets import ImageSource, fit_cover, load_image
from .placeholder import search_placeholder, spin_placeholder
from .surface import Affine, RasterSurface, background_transform, load_font, parse_color, stroke_dashed

logger = logging.getLogger(__name__)

SEARCH_DASH = (5, 5)
LABEL_COLOR = "#ffffff"
LABEL_FONT_SIZE = 48
LABEL_CHAR_WIDTH = 40


class HeadlineRenderer:
    """
    Renderer for the search and spin reveal effects.

    The background image is decoded once at construction; drawing a frame
    never touches the image source again.

    Usage:
        renderer = HeadlineRenderer(spec, background="data:image/png;base64,...")
        surface = renderer.new_surface()
        state = renderer.draw(surface, frame_index=120)
    """

    def __init__(
        self,
        spec: AnimationSpec,
        background: Optional[ImageSource] = None,
        font_path: Optional[str] = None,
    ):
        self.spec = spec
        self.timeline: RevealTimeline = timeline_for(spec)
        self.font_path = font_path if font_path is not None else get_settings().font_path

        self.background: Optional[Image.Image] = load_image(background)
        self._content, self._placement = self._prepare_content()

    def _prepare_content(self):
        """Background content in its own pixel space plus its placement on the canvas."""
        size = (self.spec.width, self.spec.height)
        if self.background is not None:
            x, y, w, h = fit_cover(self.background.width, self.background.height, *size)
            placement = Affine.translate(x, y) @ Affine.scale(
                w / self.background.width, h / self.background.height
            )
            return self.background, placement

        paper, ink = self.spec.text_color, self.spec.background_color
        if self.spec.effect == RevealEffect.SPIN:
            layer = spin_placeholder(size, paper, ink)
        else:
            layer = search_placeholder(size, paper, ink)
        return layer, Affine()

    @property
    def uses_placeholder(self) -> bool:
        return self.background is None

    def new_surface(self) -> RasterSurface:
        return RasterSurface(self.spec.width, self.spec.height, self.spec.background_color)

    def state_at(self, frame_index: int) -> FrameState:
        return self.timeline.state_at(frame_index)

    def draw(self, surface: RasterSurface, frame_index: int) -> FrameState:
        """Draw frame_index onto surface and return the state it was drawn from."""
        state = self.state_at(frame_index)

        surface.clear(self.spec.background_color)

        transform = background_transform(
            surface.width,
            surface.height,
            zoom=state.zoom,
            pan_x=state.pan_x,
            pan_y=state.pan_y,
            rotation=state.rotation,
        )
        surface.draw_transformed(self._content, transform @ self._placement)

        if self.spec.effect == RevealEffect.SEARCH:
            self._draw_search_box(surface, state)
            self._draw_magnifier(surface, state)
            self._draw_label(surface, state.element("highlight"), box_height=100)
        else:
            self._draw_label(surface, state.element("headline"), box_height=80)
        return state

    def render(self, frame_index: int) -> Image.Image:
        """Draw a frame on a fresh surface and return it as an image."""
        surface = self.new_surface()
        self.draw(surface, frame_index)
        return surface.snapshot()

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def _draw_search_box(self, surface: RasterSurface, state: FrameState) -> None:
        element = state.element("search_box")
        if not element.visible:
            return
        x = surface.width * 0.3
        y = surface.height * 0.4
        w = 200 * element.scale
        h = 60 * element.scale

        layer = surface.new_layer()
        draw = ImageDraw.Draw(layer)
        outline = [(x, y), (x + w, y), (x + w, y + h), (x, y + h), (x, y)]
        stroke_dashed(draw, outline, SEARCH_DASH, fill=parse_color(SEARCH_COLOR), width=3)
        surface.composite(layer, element.opacity)

    def _draw_magnifier(self, surface: RasterSurface, state: FrameState) -> None:
        element = state.element("magnifier")
        if not element.visible:
            return
        cx = surface.width * 0.6
        cy = surface.height * 0.3
        size = 80 * element.scale
        radius = size / 2
        color = parse_color(SEARCH_COLOR)

        layer = surface.new_layer()
        draw = ImageDraw.Draw(layer)
        if radius >= 1:
            draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), outline=color, width=4)
        draw.line([(cx + radius, cy + radius), (cx + radius + 20, cy + radius + 20)], fill=color, width=4)
        surface.composite(layer, element.opacity)

    def _draw_label(self, surface: RasterSurface, element, box_height: float) -> None:
        if not element.visible:
            return
        scale = element.scale
        cx = surface.width / 2
        cy = surface.height / 2
        text_width = len(self.spec.label) * LABEL_CHAR_WIDTH * scale
        height = box_height * scale
        pad_x, pad_y = 50 * scale, 25 * scale

        layer = surface.new_layer()
        draw = ImageDraw.Draw(layer)
        draw.rectangle(
            (
                cx - text_width / 2 - pad_x,
                cy - height / 2 - pad_y,
                cx + text_width / 2 + pad_x,
                cy + height / 2 + pad_y,
            ),
            fill=parse_color(HIGHLIGHT_COLOR),
        )
        font = load_font(max(1, round(LABEL_FONT_SIZE * scale)), self.font_path)
        draw.text(
            (cx, cy),
            self.spec.label.upper(),
            fill=parse_color(LABEL_COLOR),
            font=font,
            anchor="mm",
        )
        surface.composite(layer, element.opacity)
