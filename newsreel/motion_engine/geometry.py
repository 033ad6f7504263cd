"""
Path Geometry

Arc-length table and point-at-distance sampling over a polyline. All
three path rendering strategies sample through this one primitive.
"""

import math
from bisect import bisect_left
from typing import List, Sequence, Tuple

from ..schemas.path import Point


class GeometryUnderflow(ValueError):
    """Raised when a distance is sampled on a path with fewer than 2 points."""

    pass


class PathGeometry:
    """
    Immutable view of an ordered point list.

    Usage:
        geometry = PathGeometry([(0, 0), (100, 0), (100, 100)])
        geometry.total_length()          # 200.0
        geometry.point_at_distance(150)  # Point(x=100.0, y=50.0)
    """

    def __init__(self, points: Sequence[Tuple[float, float]]):
        self.points: Tuple[Point, ...] = tuple(Point(float(x), float(y)) for x, y in points)
        # cumulative[i] = distance from points[0] to points[i]
        self.cumulative: Tuple[float, ...] = self._build_table(self.points)

    @staticmethod
    def _build_table(points: Sequence[Point]) -> Tuple[float, ...]:
        if not points:
            return ()
        table = [0.0]
        for prev, cur in zip(points, points[1:]):
            table.append(table[-1] + math.hypot(cur.x - prev.x, cur.y - prev.y))
        return tuple(table)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def can_sample(self) -> bool:
        return len(self.points) >= 2

    def total_length(self) -> float:
        """Sum of segment lengths; 0 for fewer than 2 points."""
        if len(self.points) < 2:
            return 0.0
        return self.cumulative[-1]

    def _require_samplable(self) -> None:
        if len(self.points) < 2:
            raise GeometryUnderflow(
                f"distance sampling needs at least 2 points, got {len(self.points)}"
            )

    def point_at_distance(self, distance: float) -> Point:
        """
        Point at a cumulative distance along the path.

        Uses the first segment whose cumulative end distance is >= distance
        and interpolates linearly inside it. Distances past the end return
        the last point; distances <= 0 return the first point.

        Raises:
            GeometryUnderflow: If the path has fewer than 2 points
        """
        self._require_samplable()
        if distance <= 0:
            return self.points[0]
        if distance >= self.cumulative[-1]:
            return self.points[-1]

        # First index i >= 1 with cumulative[i] >= distance
        i = max(1, bisect_left(self.cumulative, distance))
        start, end = self.points[i - 1], self.points[i]
        before = self.cumulative[i - 1]
        segment = self.cumulative[i] - before
        if segment == 0:
            return end
        ratio = (distance - before) / segment
        return Point(
            start.x + (end.x - start.x) * ratio,
            start.y + (end.y - start.y) * ratio,
        )

    def points_until(self, distance: float) -> List[Point]:
        """
        Vertices travelled from the start up to distance.

        The interpolated point at distance is appended when it falls inside
        a segment, so stroking the result draws exactly the travelled part.

        Raises:
            GeometryUnderflow: If the path has fewer than 2 points
        """
        self._require_samplable()
        travelled = [self.points[0]]
        for point, reached in zip(self.points[1:], self.cumulative[1:]):
            if reached <= distance:
                travelled.append(point)
            else:
                travelled.append(self.point_at_distance(distance))
                break
        return travelled

    def distance_at_progress(self, progress: float) -> float:
        """Distance travelled so far: total_length() * progress."""
        return self.total_length() * progress
