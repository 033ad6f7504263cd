"""
Schemas for the map path animation.

PathSpec and AnimationStyleConfig have independent lifecycles: the editor
mutates the path point by point while the style can change at any time.
"""

from enum import Enum
from typing import List, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class Point(NamedTuple):
    """A 2-D point in canvas pixel space."""

    x: float
    y: float


class PathStyle(str, Enum):
    """Closed set of path rendering strategies."""

    GLOWING_TRAIL = "glowing_trail"
    DASHED_TRAVEL = "dashed_travel"
    MOVING_DOT = "moving_dot"


class AnimationStyleConfig(BaseModel):
    """Style of the path traversal. Mutable; assignments are re-validated."""

    model_config = ConfigDict(validate_assignment=True)

    style: PathStyle = Field(PathStyle.GLOWING_TRAIL, description="Rendering strategy")
    speed: float = Field(1.0, ge=0.1, le=3.0, description="Traversal speed multiplier")
    color: str = Field(
        "#ff0000",
        pattern=r"^#[0-9a-fA-F]{6}$",
        description="Stroke colour as #rrggbb",
    )
    thickness: int = Field(3, ge=1, le=10, description="Stroke thickness in pixels")


class PathSpec(BaseModel):
    """
    Ordered point sequence drawn by the user.

    Append, undo-last and clear-all are the only mutations.
    """

    points: List[Point] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def add_point(self, x: float, y: float) -> Point:
        point = Point(float(x), float(y))
        self.points.append(point)
        return point

    def undo_last(self) -> None:
        if self.points:
            self.points.pop()

    def clear(self) -> None:
        self.points.clear()

    def snapshot(self) -> List[Point]:
        """Copy of the points, safe to hand to a renderer."""
        return list(self.points)
