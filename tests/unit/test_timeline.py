"""
Unit tests for motion_engine.timeline module.
"""

import pytest

from newsreel.motion_engine.timeline import (
    SPIN_HEADLINE_FADE_RATE,
    SEARCH_FADE_RATE,
    Phase,
    SearchTimeline,
    SpinTimeline,
    classify_phase,
    compute_progress,
    timeline_for,
)
from newsreel.schemas.animation import AnimationSpec


class TestComputeProgress:
    """Tests for frame index -> progress."""

    def test_exact_ratio(self):
        """Test frame 210 of 300 is progress 0.7."""
        assert compute_progress(210, 300) == 0.7

    def test_bounds_inclusive(self):
        """Test first and one-past-last frame map to 0 and 1."""
        assert compute_progress(0, 300) == 0.0
        assert compute_progress(300, 300) == 1.0

    def test_non_decreasing(self):
        """Test progress never decreases as the frame index grows."""
        values = [compute_progress(i, 480) for i in range(481)]
        assert values == sorted(values)

    @pytest.mark.parametrize("frame_index,total", [(-1, 10), (11, 10), (0, 0)])
    def test_out_of_range_raises(self, frame_index, total):
        """Test invalid frame indices and frame counts are rejected."""
        with pytest.raises(ValueError):
            compute_progress(frame_index, total)


class TestClassifyPhase:
    """Tests for half-open phase classification."""

    def test_boundary_belongs_to_next_phase(self):
        """Test progress 0.2 is in the phase starting at 0.2."""
        assert classify_phase(0.2, SearchTimeline.PHASES).name == "pan"

    def test_just_below_boundary(self):
        """Test progress just below a boundary stays in the earlier phase."""
        assert classify_phase(0.1999, SearchTimeline.PHASES).name == "zoom"

    def test_final_phase_closed(self):
        """Test progress 1.0 falls in the final phase."""
        assert classify_phase(1.0, SearchTimeline.PHASES).name == "highlight"
        assert classify_phase(1.0, SpinTimeline.PHASES).name == "headline"

    def test_spin_phase_edges(self):
        """Test spin phase ends where the two turns complete."""
        assert classify_phase(0.0, SpinTimeline.PHASES).name == "spin"
        assert classify_phase(1 / 4.2, SpinTimeline.PHASES).name == "settle"
        assert classify_phase(0.7, SpinTimeline.PHASES).name == "headline"

    def test_outside_all_phases(self):
        """Test progress beyond the last phase raises."""
        with pytest.raises(ValueError):
            classify_phase(1.5, (Phase("only", 0.0, 1.0),))


class TestRescaleConstants:
    """Tests that the per-effect rescale factors are kept literally."""

    def test_search_rate(self):
        assert SEARCH_FADE_RATE == 5.0

    def test_spin_rate(self):
        assert SPIN_HEADLINE_FADE_RATE == 3.33

    def test_spin_headline_never_quite_one(self):
        """Test headline opacity at the last frame is 0.3 * 3.33, not 1.0."""
        state = SpinTimeline(300, 1920, 1080).state_at(300)
        assert state.element("headline").opacity == pytest.approx(0.999)


class TestSearchTimeline:
    """Tests for the newspaper search effect."""

    @pytest.fixture
    def timeline(self):
        return SearchTimeline(total_frames=1000, width=1920, height=1080)

    def test_zoom_linear(self, timeline):
        """Test zoom runs from 0.3 to 1.2 over the whole animation."""
        assert timeline.state_at(0).zoom == pytest.approx(0.3)
        assert timeline.state_at(500).zoom == pytest.approx(0.75)
        assert timeline.state_at(1000).zoom == pytest.approx(1.2)

    def test_no_pan_before_pan_phase(self, timeline):
        """Test background is not offset during the zoom phase."""
        state = timeline.state_at(100)
        assert state.pan_x == 0
        assert state.pan_y == 0

    def test_pan_holds_after_pan_phase(self, timeline):
        """Test pan keeps its end value instead of snapping back."""
        end_of_pan = timeline.state_at(400)
        later = timeline.state_at(900)
        assert end_of_pan.pan_x == pytest.approx(0.2 * 0.4 * 1920)
        assert later.pan_x == pytest.approx(end_of_pan.pan_x)
        assert later.pan_y == pytest.approx(end_of_pan.pan_y)

    def test_search_box_ramps_in(self, timeline):
        """Test search box opacity and scale ramp over the search phase."""
        state = timeline.state_at(500)
        assert state.phase == "search"
        assert state.element("search_box").opacity == pytest.approx(0.5)
        assert state.element("search_box").scale == pytest.approx(0.5)
        assert not state.element("magnifier").visible

    def test_search_box_full_in_magnify(self, timeline):
        state = timeline.state_at(700)
        assert state.element("search_box").opacity == 1.0
        assert state.element("magnifier").opacity == pytest.approx(0.5)

    def test_search_box_hidden_in_highlight(self, timeline):
        """Test only magnifier and highlight remain in the last phase."""
        state = timeline.state_at(900)
        assert not state.element("search_box").visible
        assert state.element("magnifier").opacity == 1.0
        assert state.element("highlight").opacity == pytest.approx(0.5)
        assert state.element("highlight").scale == pytest.approx(1.02)

    def test_highlight_saturates(self, timeline):
        state = timeline.state_at(1000)
        assert state.element("highlight").opacity == pytest.approx(1.0)
        assert state.element("highlight").scale == pytest.approx(1.04)

    def test_no_rotation(self, timeline):
        assert timeline.state_at(500).rotation == 0


class TestSpinTimeline:
    """Tests for the newspaper spin effect."""

    @pytest.fixture
    def timeline(self):
        return SpinTimeline(total_frames=300, width=1920, height=1080)

    def test_rotation_two_turns(self, timeline):
        """Test rotation reaches 720 degrees and stays there."""
        assert timeline.state_at(0).rotation == 0
        assert timeline.state_at(30).rotation == pytest.approx(0.42 * 720)
        assert timeline.state_at(150).rotation == 720
        assert timeline.state_at(300).rotation == 720

    def test_zoom_gain(self, timeline):
        assert timeline.state_at(300).zoom == pytest.approx(1.15)

    def test_headline_hidden_until_phase(self, timeline):
        assert not timeline.state_at(209).element("headline").visible
        assert not timeline.state_at(210).element("headline").visible
        assert timeline.state_at(240).element("headline").opacity == pytest.approx(0.333)


class TestTimelineFor:
    """Tests for picking a timeline from a spec."""

    def test_search_spec(self, search_spec):
        timeline = timeline_for(search_spec)
        assert isinstance(timeline, SearchTimeline)
        assert timeline.total_frames == 300

    def test_spin_auto_duration(self):
        """Test auto duration is 5 seconds for spin."""
        spec = AnimationSpec(label="x", effect="spin", duration="auto", fps=60)
        assert timeline_for(spec).total_frames == 300

    def test_search_auto_duration(self):
        """Test auto duration is 8 seconds for search."""
        spec = AnimationSpec(label="x", effect="search", duration="auto", fps=60)
        assert timeline_for(spec).total_frames == 480

    def test_state_idempotent(self, spin_spec):
        """Test identical inputs give identical frame states."""
        timeline = timeline_for(spin_spec)
        assert timeline.state_at(123) == timeline.state_at(123)
        assert timeline_for(spin_spec).state_at(123) == timeline.state_at(123)
