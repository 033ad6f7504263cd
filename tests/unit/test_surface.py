"""
Unit tests for renderer.surface module.
"""

import pytest
from PIL import Image, ImageDraw

from newsreel.renderer.surface import (
    Affine,
    RasterSurface,
    background_transform,
    dash_segments,
    parse_color,
    with_alpha,
)


class TestAffine:
    """Tests for affine composition."""

    def test_identity(self):
        assert Affine().apply(3, 4) == (3, 4)

    def test_compose_applies_right_first(self):
        """Test m @ n applies n before m."""
        m = Affine.translate(10, 0) @ Affine.scale(2)
        assert m.apply(1, 1) == (12, 2)

    def test_inverse_round_trip(self):
        m = Affine.translate(5, -3) @ Affine.rotate(30) @ Affine.scale(1.5)
        x, y = (m.inverse() @ m).apply(7, 9)
        assert x == pytest.approx(7)
        assert y == pytest.approx(9)

    def test_singular_inverse_raises(self):
        with pytest.raises(ValueError):
            Affine.scale(0).inverse()


class TestBackgroundTransform:
    """Tests for the composed background transform."""

    def test_zoom_about_centre(self):
        """Test the centre is a fixed point of a pure zoom."""
        m = background_transform(200, 100, zoom=2.0)
        assert m.apply(100, 50) == pytest.approx((100, 50))
        assert m.apply(0, 0) == pytest.approx((-100, -50))

    def test_pan_scaled_by_zoom(self):
        """Test pan is applied before zoom."""
        m = background_transform(200, 100, zoom=2.0, pan_x=10, pan_y=5)
        assert m.apply(100, 50) == pytest.approx((120, 60))

    def test_rotation_about_centre(self):
        m = background_transform(200, 200, rotation=90)
        assert m.apply(200, 100) == pytest.approx((100, 200))

    def test_full_turns_are_identity(self):
        m = background_transform(200, 100, rotation=720)
        assert m.apply(13, 17) == pytest.approx((13, 17))


class TestColors:

    def test_parse_hex(self):
        assert parse_color("#ff6b35") == (255, 107, 53)

    def test_with_alpha_clamps(self):
        assert with_alpha("#00ff00", 0.5) == (0, 255, 0, 128)
        assert with_alpha("#00ff00", 2.0)[3] == 255
        assert with_alpha("#00ff00", -1.0)[3] == 0


class TestDashSegments:
    """Tests for dash pattern splitting."""

    def test_straight_line(self):
        pieces = dash_segments([(0, 0), (30, 0)], (10, 5))
        assert [(round(a[0]), round(b[0])) for a, b in pieces] == [(0, 10), (15, 25)]

    def test_phase_carries_across_vertices(self):
        """Test a dash that crosses a corner continues on the next segment."""
        pieces = dash_segments([(0, 0), (6, 0), (6, 10)], (10, 5))
        assert pieces[0] == ((0.0, 0.0), (6.0, 0.0))
        assert pieces[1] == ((6.0, 0.0), (6.0, 4.0))

    def test_degenerate(self):
        assert dash_segments([(0, 0)], (10, 5)) == []
        assert dash_segments([(0, 0), (10, 0)], ()) == []


class TestRasterSurface:
    """Tests for the Pillow-backed surface."""

    def test_background_fill(self):
        surface = RasterSurface(4, 3, "#102030")
        assert surface.size == (4, 3)
        assert surface.image.getpixel((2, 1)) == (16, 32, 48)

    def test_rgb_bytes_length(self):
        surface = RasterSurface(4, 3)
        assert len(surface.to_rgb_bytes()) == 4 * 3 * 3

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            RasterSurface(0, 10)

    def test_composite_opacity(self):
        """Test layer alpha is scaled by opacity like canvas globalAlpha."""
        surface = RasterSurface(2, 2, "#000000")
        layer = surface.new_layer()
        ImageDraw.Draw(layer).rectangle((0, 0, 1, 1), fill=(255, 255, 255, 255))
        surface.composite(layer, 0.5)
        assert surface.image.getpixel((0, 0))[0] == pytest.approx(128, abs=1)

    def test_composite_zero_opacity_noop(self):
        surface = RasterSurface(2, 2, "#000000")
        layer = surface.new_layer()
        ImageDraw.Draw(layer).rectangle((0, 0, 1, 1), fill=(255, 255, 255, 255))
        surface.composite(layer, 0.0)
        assert surface.image.getpixel((0, 0)) == (0, 0, 0)

    def test_draw_transformed_leaves_uncovered_pixels(self):
        """Test pixels outside the transformed source keep the clear colour."""
        surface = RasterSurface(20, 20, "#000000")
        source = Image.new("RGB", (20, 20), (255, 0, 0))
        surface.draw_transformed(source, background_transform(20, 20, zoom=0.5))
        assert surface.image.getpixel((10, 10)) == (255, 0, 0)
        assert surface.image.getpixel((1, 1)) == (0, 0, 0)

    def test_png_signature(self):
        assert RasterSurface(2, 2).to_png().startswith(b"\x89PNG")

    def test_snapshot_is_copy(self):
        surface = RasterSurface(2, 2, "#000000")
        snapshot = surface.snapshot()
        surface.clear("#ffffff")
        assert snapshot.getpixel((0, 0)) == (0, 0, 0)
