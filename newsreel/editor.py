"""
Interactive path editor model.

Holds the PathSpec being drawn over a map background, turns pointer input
into points, and plays a preview of the traversal. Export hands a
snapshot of the points to the capture pipeline, so editing can continue
while an export runs.
"""

import logging
from typing import Optional, Tuple

from PIL import Image

from .capture.export import export_path
from .core.config import Settings, get_settings
from .motion_engine.geometry import GeometryUnderflow
from .renderer.assets import ImageSource, fit_cover, load_image
from .renderer.path_renderer import PREVIEW_STEP, PathRenderer
from .schemas.capture import CaptureResult
from .schemas.path import AnimationStyleConfig, PathSpec, Point

logger = logging.getLogger(__name__)


class PathEditor:
    """
    Point input, undo/clear and preview playback for one map.

    Points are accepted only inside the placed background image (anywhere
    on the canvas when there is none). Holding the pointer down and moving
    appends a point per move event.

    Usage:
        editor = PathEditor(background="map.png")
        editor.pointer_down(100, 120)
        editor.pointer_move(180, 140)
        editor.pointer_up()
        editor.start_preview()
        while editor.previewing:
            editor.advance_preview()
            frame = editor.render_preview()
    """

    def __init__(
        self,
        background: Optional[ImageSource] = None,
        size: Optional[Tuple[int, int]] = None,
        style: Optional[AnimationStyleConfig] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.size = size or (self.settings.map_width, self.settings.map_height)
        self.path = PathSpec()
        self.style = style or AnimationStyleConfig()
        self.background: Optional[Image.Image] = load_image(background)
        self.image_rect = self._image_rect()

        self.drawing = False
        self.previewing = False
        self.preview_progress = 0.0
        self._preview_renderer: Optional[PathRenderer] = None

    def _image_rect(self) -> Optional[Tuple[float, float, float, float]]:
        if self.background is None:
            return None
        return fit_cover(self.background.width, self.background.height, *self.size)

    # ------------------------------------------------------------------
    # Point input
    # ------------------------------------------------------------------

    def accepts(self, x: float, y: float) -> bool:
        """True if (x, y) lies on the canvas and inside the placed image."""
        width, height = self.size
        if not (0 <= x <= width and 0 <= y <= height):
            return False
        if self.image_rect is None:
            return True
        left, top, w, h = self.image_rect
        u = (x - left) / w
        v = (y - top) / h
        return 0 <= u <= 1 and 0 <= v <= 1

    def add_point(self, x: float, y: float) -> Optional[Point]:
        if not self.accepts(x, y):
            logger.debug(f"Ignoring point outside image bounds: ({x}, {y})")
            return None
        return self.path.add_point(x, y)

    def pointer_down(self, x: float, y: float) -> Optional[Point]:
        self.drawing = True
        return self.add_point(x, y)

    def pointer_move(self, x: float, y: float) -> Optional[Point]:
        if not self.drawing:
            return None
        return self.add_point(x, y)

    def pointer_up(self) -> None:
        self.drawing = False

    def undo(self) -> None:
        self.path.undo_last()

    def clear(self) -> None:
        self.path.clear()
        self.stop_preview()
        self.preview_progress = 0.0
        self._preview_renderer = None

    @property
    def can_animate(self) -> bool:
        return len(self.path) >= 2

    def _require_path(self) -> None:
        if not self.can_animate:
            raise GeometryUnderflow(
                f"path animation needs at least 2 points, got {len(self.path)}"
            )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def renderer(self) -> PathRenderer:
        """Renderer over a snapshot of the current points and style."""
        self._require_path()
        return PathRenderer(
            self.path.snapshot(),
            self.style,
            self.size,
            background=self.background,
        )

    def start_preview(self) -> None:
        """
        Raises:
            GeometryUnderflow: If fewer than 2 points have been drawn
        """
        self._require_path()
        self._preview_renderer = self.renderer()
        self.preview_progress = 0.0
        self.previewing = True

    def stop_preview(self) -> None:
        self.previewing = False

    def advance_preview(self) -> float:
        """Advance one preview tick; stops once progress reaches 1."""
        if not self.previewing:
            return self.preview_progress
        progress = self.preview_progress + PREVIEW_STEP * self.style.speed
        if progress >= 1:
            progress = 1.0
            self.previewing = False
        self.preview_progress = progress
        return progress

    def render_preview(self) -> Image.Image:
        if self._preview_renderer is None:
            self._preview_renderer = self.renderer()
        return self._preview_renderer.render(self.preview_progress)

    def export(self, **kwargs) -> CaptureResult:
        """
        Record the current path to a video; keyword arguments go to export_path.

        Raises:
            GeometryUnderflow: If fewer than 2 points have been drawn
        """
        self._require_path()
        self.stop_preview()
        return export_path(
            self.path.snapshot(),
            self.style,
            background=self.background,
            size=self.size,
            settings=self.settings,
            **kwargs,
        )
