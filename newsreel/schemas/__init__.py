"""Pydantic schemas shared by the renderer and the capture pipeline."""

from .animation import (
    HIGHLIGHT_COLOR,
    SEARCH_COLOR,
    AnimationSpec,
    Aspect,
    DurationChoice,
    RevealEffect,
    Theme,
    slugify,
)
from .capture import CaptureResult
from .path import AnimationStyleConfig, PathSpec, PathStyle, Point

__all__ = [
    "HIGHLIGHT_COLOR",
    "SEARCH_COLOR",
    "AnimationSpec",
    "Aspect",
    "DurationChoice",
    "RevealEffect",
    "Theme",
    "slugify",
    "CaptureResult",
    "AnimationStyleConfig",
    "PathSpec",
    "PathStyle",
    "Point",
]
