"""Frame renderers drawing onto a Pillow-backed RasterSurface."""

from .assets import AssetLoadError, fit_cover, load_image
from .frame_renderer import HeadlineRenderer
from .path_renderer import PATH_STYLES, PathRenderer, path_total_frames
from .surface import Affine, RasterSurface

__all__ = [
    "AssetLoadError",
    "fit_cover",
    "load_image",
    "HeadlineRenderer",
    "PATH_STYLES",
    "PathRenderer",
    "path_total_frames",
    "Affine",
    "RasterSurface",
]
