"""
Unit tests for the command line entry point.
"""

import argparse
import json

import pytest

from newsreel import main as cli
from newsreel.schemas.capture import CaptureResult


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestParsePoints:

    def test_pairs(self):
        assert cli.parse_points("1,2 3.5,4") == [(1.0, 2.0), (3.5, 4.0)]

    def test_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_points("1,2 oops")


class TestFrameCommand:

    def test_writes_png(self, temp_output_dir, capsys):
        output = temp_output_dir / "frame.png"
        code = run(["frame", "--label", "Hello", "--duration", "5s", "--fps", "10",
                    "--frame", "35", "--output", str(output)])
        assert code == 0
        assert output.read_bytes().startswith(b"\x89PNG")
        assert "phase=magnify" in capsys.readouterr().out

    def test_frame_out_of_range(self, temp_output_dir):
        code = run(["frame", "--label", "Hello", "--duration", "5s", "--fps", "10",
                    "--frame", "51", "--output", str(temp_output_dir / "f.png")])
        assert code == 1

    def test_invalid_label(self):
        """Test validation errors exit with status 2."""
        assert run(["frame", "--label", "x" * 40]) == 2


class TestExportCommands:
    """Tests for reveal and map with the export functions stubbed out."""

    @pytest.fixture
    def exports(self, monkeypatch):
        calls = []

        def fake_reveal(spec, **kwargs):
            calls.append(("reveal", spec, kwargs))
            return CaptureResult(data=b"mp4", mime_type="video/mp4", filename=spec.suggested_filename())

        def fake_path(points, style, **kwargs):
            calls.append(("map", points, kwargs))
            return CaptureResult(data=b"mp4", mime_type="video/mp4", filename="map-animation-moving_dot.mp4")

        monkeypatch.setattr(cli, "export_reveal", fake_reveal)
        monkeypatch.setattr(cli, "export_path", fake_path)
        return calls

    def test_reveal_writes_file(self, exports, temp_output_dir, capsys):
        code = run(["reveal", "--label", "Hello", "--effect", "spin",
                    "--output", str(temp_output_dir) + "/", "--fast"])
        assert code == 0
        written = temp_output_dir / "newspaper-spin-hello.mp4"
        assert written.read_bytes() == b"mp4"
        out = capsys.readouterr().out
        summary = json.loads(out[out.index("{"):])
        assert summary["path"] == str(written)
        assert exports[0][2]["realtime"] is False

    def test_reveal_uses_cache(self, exports, temp_output_dir):
        """Test a repeated export with identical inputs is served from the cache."""
        argv = ["reveal", "--label", "Hello", "--output", str(temp_output_dir / "a.mp4")]
        assert run(argv) == 0
        assert run(argv) == 0
        assert len(exports) == 1

    def test_still_frame_records_again(self, monkeypatch, temp_output_dir):
        """Test a still-frame fallback is not replayed from the cache."""
        calls = []

        def still_reveal(spec, **kwargs):
            calls.append(spec)
            return CaptureResult(
                data=b"png", mime_type="video/mp4", filename=spec.suggested_filename(), still_frame=True
            )

        monkeypatch.setattr(cli, "export_reveal", still_reveal)
        argv = ["reveal", "--label", "Hello", "--output", str(temp_output_dir / "a.mp4")]
        assert run(argv) == 0
        assert run(argv) == 0
        assert len(calls) == 2

    def test_no_cache(self, exports, temp_output_dir):
        argv = ["reveal", "--label", "Hello", "--no-cache", "--output", str(temp_output_dir / "a.mp4")]
        run(argv)
        run(argv)
        assert len(exports) == 2

    def test_map_points(self, exports, temp_output_dir):
        code = run(["map", "--points", "0,0 100,0", "--style", "moving_dot",
                    "--no-reencode", "--output", str(temp_output_dir / "m.mp4")])
        assert code == 0
        kind, points, kwargs = exports[0]
        assert points == [(0.0, 0.0), (100.0, 0.0)]
        assert kwargs["reencode"] is False
        assert kwargs["size"] == (800, 600)

    def test_map_points_file(self, exports, temp_output_dir):
        points_file = temp_output_dir / "points.json"
        points_file.write_text(json.dumps([{"x": 1, "y": 2}, [3, 4]]))
        run(["map", "--points-file", str(points_file), "--output", str(temp_output_dir / "m.mp4")])
        assert exports[0][1] == [(1.0, 2.0), (3.0, 4.0)]
