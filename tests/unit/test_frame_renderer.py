"""
Unit tests for renderer.frame_renderer module.
"""

import base64
import io
import logging

from PIL import Image

from newsreel.renderer.frame_renderer import HeadlineRenderer
from newsreel.schemas.animation import AnimationSpec

HIGHLIGHT_RGB = (255, 107, 53)


def png_data_uri(size=(64, 32), color=(0, 0, 255)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def close_to(pixel, expected, tolerance=3):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


class TestBackground:
    """Tests for background selection."""

    def test_placeholder_without_image(self, search_spec):
        assert HeadlineRenderer(search_spec).uses_placeholder

    def test_data_uri_image(self, search_spec):
        renderer = HeadlineRenderer(search_spec, background=png_data_uri())
        assert not renderer.uses_placeholder

    def test_bad_image_falls_back(self, search_spec, caplog):
        """Test an undecodable background is replaced by the placeholder and logged."""
        with caplog.at_level(logging.WARNING):
            renderer = HeadlineRenderer(search_spec, background="data:image/png;base64,bm90IGFuIGltYWdl")
        assert renderer.uses_placeholder
        assert "placeholder" in caplog.text

    def test_cover_fill_at_full_zoom(self):
        """Test a cover-fitted image fills the canvas once zoom passes 1."""
        spec = AnimationSpec(label="x", effect="spin", duration="5s", fps=10)
        renderer = HeadlineRenderer(spec, background=png_data_uri(color=(0, 0, 255)))
        image = renderer.render(50)
        assert close_to(image.getpixel((2, 2)), (0, 0, 255))


class TestRender:
    """Tests for whole-frame rendering."""

    def test_frame_size_landscape(self, search_spec):
        assert HeadlineRenderer(search_spec).render(0).size == (1920, 1080)

    def test_frame_size_vertical(self):
        spec = AnimationSpec(label="x", aspect="vertical", duration="5s", fps=10)
        assert HeadlineRenderer(spec).render(0).size == (1080, 1920)

    def test_deterministic(self, spin_spec):
        """Test the same frame renders identically from independent renderers."""
        first = HeadlineRenderer(spin_spec).render(123).tobytes()
        second = HeadlineRenderer(spin_spec).render(123).tobytes()
        assert first == second

    def test_theme_background_shows_around_zoomed_sheet(self):
        """Test the cleared background is visible outside the zoomed-out content."""
        spec = AnimationSpec(label="x", theme="dark", duration="5s", fps=10)
        image = HeadlineRenderer(spec).render(0)
        assert image.getpixel((5, 5)) == (0, 0, 0)

    def test_draw_returns_state(self, search_spec):
        renderer = HeadlineRenderer(search_spec)
        surface = renderer.new_surface()
        state = renderer.draw(surface, 210)
        assert state.progress == 0.7
        assert state.phase == "magnify"


class TestOverlays:
    """Tests for phase-gated overlays."""

    def test_search_highlight_box_at_end(self, search_spec):
        """Test the label box is drawn in the highlight colour on the last frame."""
        image = HeadlineRenderer(search_spec).render(300)
        assert image.getpixel((660, 540)) == HIGHLIGHT_RGB

    def test_search_no_highlight_early(self, search_spec):
        image = HeadlineRenderer(search_spec).render(60)
        assert image.getpixel((660, 540)) != HIGHLIGHT_RGB

    def test_spin_headline_at_end(self, spin_spec):
        image = HeadlineRenderer(spin_spec).render(300)
        assert close_to(image.getpixel((660, 540)), HIGHLIGHT_RGB)

    def test_spin_headline_hidden_before_phase(self, spin_spec):
        image = HeadlineRenderer(spin_spec).render(150)
        assert not close_to(image.getpixel((660, 540)), HIGHLIGHT_RGB)
