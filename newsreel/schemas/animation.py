"""
Pydantic schemas for headline reveal jobs.

An AnimationSpec is immutable for the lifetime of a render job; every
derived quantity (resolution, duration, total frame count) is computed
from it and never stored elsewhere.
"""

import re
from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.config import get_settings


class Theme(str, Enum):
    """Two-value palette selector."""

    LIGHT = "light"
    DARK = "dark"


class Aspect(str, Enum):
    """Output orientation, mapped to a fixed resolution pair."""

    LANDSCAPE = "landscape"
    VERTICAL = "vertical"


class DurationChoice(str, Enum):
    """Duration options offered to the user."""

    S5 = "5s"
    S10 = "10s"
    S15 = "15s"
    S20 = "20s"
    S25 = "25s"
    S30 = "30s"
    AUTO = "auto"


class RevealEffect(str, Enum):
    """Headline reveal variants."""

    SEARCH = "search"
    SPIN = "spin"


RESOLUTIONS: Dict[Aspect, Tuple[int, int]] = {
    Aspect.LANDSCAPE: (1920, 1080),
    Aspect.VERTICAL: (1080, 1920),
}

# "auto" resolves per effect
AUTO_DURATION_SECONDS: Dict[RevealEffect, int] = {
    RevealEffect.SEARCH: 8,
    RevealEffect.SPIN: 5,
}

# (background, text) per theme
THEME_COLORS: Dict[Theme, Tuple[str, str]] = {
    Theme.LIGHT: ("#ffffff", "#000000"),
    Theme.DARK: ("#000000", "#ffffff"),
}

HIGHLIGHT_COLOR = "#ff6b35"
SEARCH_COLOR = "#00ff00"


def _default_fps() -> int:
    return get_settings().reveal_fps


def slugify(text: str) -> str:
    """Lowercase text and collapse anything non-alphanumeric into single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "untitled"


class AnimationSpec(BaseModel):
    """Immutable description of one headline reveal render job."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Text revealed in the highlight box")
    theme: Theme = Field(Theme.LIGHT, description="Palette selector")
    aspect: Aspect = Field(Aspect.LANDSCAPE, description="Output orientation")
    duration: DurationChoice = Field(DurationChoice.AUTO, description="Duration choice")
    effect: RevealEffect = Field(RevealEffect.SEARCH, description="Reveal variant")
    fps: int = Field(default_factory=_default_fps, gt=0, le=120, description="Nominal frame rate")

    @field_validator("label")
    @classmethod
    def _check_label_length(cls, value: str) -> str:
        limit = get_settings().label_max_length
        if len(value) > limit:
            raise ValueError(f"label must be at most {limit} characters")
        return value

    @property
    def resolution(self) -> Tuple[int, int]:
        return RESOLUTIONS[self.aspect]

    @property
    def width(self) -> int:
        return self.resolution[0]

    @property
    def height(self) -> int:
        return self.resolution[1]

    @property
    def duration_seconds(self) -> int:
        if self.duration == DurationChoice.AUTO:
            return AUTO_DURATION_SECONDS[self.effect]
        return int(self.duration.value.rstrip("s"))

    @property
    def total_frames(self) -> int:
        """Fixed for the session: duration x frame rate."""
        return self.duration_seconds * self.fps

    @property
    def background_color(self) -> str:
        return THEME_COLORS[self.theme][0]

    @property
    def text_color(self) -> str:
        return THEME_COLORS[self.theme][1]

    @property
    def filename_stem(self) -> str:
        return f"newspaper-{self.effect.value}-{slugify(self.label)}"

    def suggested_filename(self, extension: str = "mp4") -> str:
        """Filename combining the effect name and the label text."""
        return f"{self.filename_stem}.{extension}"
