"""
Motion Engine for Procedural Animations

Pure frame-index -> visual-state mapping for the headline reveal effects,
arc-length sampling for drawn paths, and caching of finished exports.

Usage:
    from newsreel.motion_engine import timeline_for, PathGeometry

    state = timeline_for(spec).state_at(210)
    point = PathGeometry([(0, 0), (100, 0)]).point_at_distance(50)
"""

from .timeline import (
    FrameState,
    ElementState,
    Phase,
    RevealTimeline,
    SearchTimeline,
    SpinTimeline,
    classify_phase,
    compute_progress,
    timeline_for,
)

from .geometry import (
    GeometryUnderflow,
    PathGeometry,
)

from .cache import (
    ExportCache,
    generate_cache_key,
)

__all__ = [
    # Timeline
    "FrameState",
    "ElementState",
    "Phase",
    "RevealTimeline",
    "SearchTimeline",
    "SpinTimeline",
    "classify_phase",
    "compute_progress",
    "timeline_for",
    # Geometry
    "GeometryUnderflow",
    "PathGeometry",
    # Cache
    "ExportCache",
    "generate_cache_key",
]
