"""
Animation Timeline for Headline Reveals

Maps a frame index to a FrameState. Everything here is a pure function of
(frame_index, total_frames, canvas width): no clocks, no globals, so a
preview and an export of the same frame always agree.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple, Type

from ..schemas.animation import AnimationSpec, RevealEffect

# Local-progress rescale factors. They differ per effect and are kept
# exactly as tuned: 5 saturates after 0.2 of progress, 3.33 after ~0.3.
SEARCH_FADE_RATE = 5.0
SPIN_HEADLINE_FADE_RATE = 3.33

SEARCH_ZOOM_START = 0.3
SEARCH_ZOOM_END = 1.2

SPIN_RATE = 4.2
SPIN_DEGREES = 720.0
SPIN_ZOOM_GAIN = 0.15


@dataclass(frozen=True)
class Phase:
    """
    Named sub-interval of progress.

    Attributes:
        name: Phase tag reported in FrameState
        start: Inclusive lower bound
        end: Exclusive upper bound (inclusive for the final phase)
    """

    name: str
    start: float
    end: float


@dataclass(frozen=True)
class ElementState:
    """Opacity and scale of one overlay element."""

    opacity: float = 0.0
    scale: float = 1.0

    @property
    def visible(self) -> bool:
        return self.opacity > 0


HIDDEN = ElementState()


@dataclass(frozen=True)
class FrameState:
    """
    Visual parameters of one frame. Recomputed every frame, never stored.

    Attributes:
        frame_index: Logical frame number
        total_frames: Frame count of the session
        progress: frame_index / total_frames
        phase: Active phase tag
        zoom: Background scale factor (continuous in progress)
        pan_x: Horizontal background offset in pixels
        pan_y: Vertical background offset in pixels
        rotation: Background rotation in degrees
        elements: Overlay element name -> ElementState
    """

    frame_index: int
    total_frames: int
    progress: float
    phase: str
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    rotation: float = 0.0
    elements: Dict[str, ElementState] = field(default_factory=dict)

    def element(self, name: str) -> ElementState:
        return self.elements.get(name, HIDDEN)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def compute_progress(frame_index: int, total_frames: int) -> float:
    """
    Normalized frame position.

    Args:
        frame_index: 0 <= frame_index <= total_frames
        total_frames: Frame count of the session (> 0)

    Returns:
        frame_index / total_frames

    Raises:
        ValueError: If total_frames is not positive or frame_index is out of range
    """
    if total_frames <= 0:
        raise ValueError(f"total_frames must be positive, got {total_frames}")
    if not 0 <= frame_index <= total_frames:
        raise ValueError(f"frame_index {frame_index} outside [0, {total_frames}]")
    return frame_index / total_frames


def classify_phase(progress: float, phases: Sequence[Phase]) -> Phase:
    """
    Find the phase containing progress.

    Phases are half-open [start, end); the last phase also contains its end
    so that progress == 1.0 always has a phase.
    """
    for phase in phases:
        if phase.start <= progress < phase.end:
            return phase
    last = phases[-1]
    if progress == last.end:
        return last
    raise ValueError(f"progress {progress} is outside every phase")


def local_ramp(progress: float, phase_start: float, rate: float) -> float:
    """Fast ease-in then hold: clamp((progress - phase_start) * rate)."""
    return clamp((progress - phase_start) * rate)


class RevealTimeline:
    """Base class: subclasses define PHASES and _parameters()."""

    effect: RevealEffect
    PHASES: Tuple[Phase, ...] = ()

    def __init__(self, total_frames: int, width: int, height: int) -> None:
        if total_frames <= 0:
            raise ValueError(f"total_frames must be positive, got {total_frames}")
        self.total_frames = total_frames
        self.width = width
        self.height = height

    @classmethod
    def from_spec(cls, spec: AnimationSpec) -> "RevealTimeline":
        return cls(spec.total_frames, spec.width, spec.height)

    def state_at(self, frame_index: int) -> FrameState:
        progress = compute_progress(frame_index, self.total_frames)
        phase = classify_phase(progress, self.PHASES)
        return self._parameters(frame_index, progress, phase.name)

    def _parameters(self, frame_index: int, progress: float, phase: str) -> FrameState:
        raise NotImplementedError


class SearchTimeline(RevealTimeline):
    """
    Newspaper search: zoom in, pan across, frame a search box, bring in a
    magnifier, then highlight the label.
    """

    effect = RevealEffect.SEARCH
    PHASES = (
        Phase("zoom", 0.0, 0.2),
        Phase("pan", 0.2, 0.4),
        Phase("search", 0.4, 0.6),
        Phase("magnify", 0.6, 0.8),
        Phase("highlight", 0.8, 1.0),
    )

    def _parameters(self, frame_index: int, progress: float, phase: str) -> FrameState:
        zoom = SEARCH_ZOOM_START + progress * (SEARCH_ZOOM_END - SEARCH_ZOOM_START)

        # Pan only moves during the pan phase and holds afterwards
        pan_progress = clamp(progress, 0.2, 0.4) - 0.2
        pan_x = pan_progress * 0.4 * self.width
        pan_y = math.sin(pan_progress * 10) * 50

        if phase == "search":
            ramp = local_ramp(progress, 0.4, SEARCH_FADE_RATE)
            search_box = ElementState(opacity=ramp, scale=ramp)
        elif phase == "magnify":
            search_box = ElementState(opacity=1.0)
        else:
            search_box = HIDDEN

        if phase == "magnify":
            ramp = local_ramp(progress, 0.6, SEARCH_FADE_RATE)
            magnifier = ElementState(opacity=ramp, scale=ramp)
        elif phase == "highlight":
            magnifier = ElementState(opacity=1.0)
        else:
            magnifier = HIDDEN

        if phase == "highlight":
            highlight = ElementState(
                opacity=local_ramp(progress, 0.8, SEARCH_FADE_RATE),
                scale=1 + (progress - 0.8) * 0.2,
            )
        else:
            highlight = HIDDEN

        return FrameState(
            frame_index=frame_index,
            total_frames=self.total_frames,
            progress=progress,
            phase=phase,
            zoom=zoom,
            pan_x=pan_x,
            pan_y=pan_y,
            elements={
                "search_box": search_box,
                "magnifier": magnifier,
                "highlight": highlight,
            },
        )


class SpinTimeline(RevealTimeline):
    """Newspaper spin: two full turns while zooming, then the headline fades in."""

    effect = RevealEffect.SPIN
    PHASES = (
        Phase("spin", 0.0, 1 / SPIN_RATE),
        Phase("settle", 1 / SPIN_RATE, 0.7),
        Phase("headline", 0.7, 1.0),
    )

    def _parameters(self, frame_index: int, progress: float, phase: str) -> FrameState:
        spin = min(progress * SPIN_RATE, 1.0)
        headline = ElementState(
            opacity=local_ramp(progress, 0.7, SPIN_HEADLINE_FADE_RATE),
        )
        return FrameState(
            frame_index=frame_index,
            total_frames=self.total_frames,
            progress=progress,
            phase=phase,
            zoom=1 + progress * SPIN_ZOOM_GAIN,
            rotation=spin * SPIN_DEGREES,
            elements={"headline": headline},
        )


TIMELINES: Dict[RevealEffect, Type[RevealTimeline]] = {
    RevealEffect.SEARCH: SearchTimeline,
    RevealEffect.SPIN: SpinTimeline,
}


def timeline_for(spec: AnimationSpec) -> RevealTimeline:
    """
    Build the timeline matching a spec's effect.

    Args:
        spec: AnimationSpec of the render job

    Returns:
        RevealTimeline bound to the spec's frame count and width
    """
    return TIMELINES[spec.effect].from_spec(spec)
