"""
newsreel command line entry point.

Usage:
    newsreel reveal --label "Markets rally" --effect spin --output out/
    newsreel map --points "100,100 300,120 420,380" --style moving_dot
    newsreel frame --label "Markets rally" --frame 210 --output frame.png
    newsreel encoders
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from .capture.encoders import CODEC_CANDIDATES, CaptureError, ffmpeg_support_probe
from .capture.export import export_path, export_reveal
from .capture.ffmpeg_runner import FFmpegError, get_ffmpeg_version
from .core.config import get_settings
from .motion_engine.cache import ExportCache, generate_cache_key
from .motion_engine.geometry import GeometryUnderflow
from .renderer.frame_renderer import HeadlineRenderer
from .schemas.animation import AnimationSpec, Aspect, DurationChoice, RevealEffect, Theme
from .schemas.capture import CaptureResult
from .schemas.path import AnimationStyleConfig, PathStyle

logger = logging.getLogger("newsreel")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def parse_points(text: str) -> List[Tuple[float, float]]:
    """Parse "x,y x,y ..." into a point list."""
    points = []
    for pair in text.split():
        try:
            x, y = pair.split(",")
            points.append((float(x), float(y)))
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid point '{pair}', expected x,y")
    return points


def _load_points(args: argparse.Namespace) -> List[Tuple[float, float]]:
    if args.points_file:
        raw = json.loads(Path(args.points_file).read_text())
        return [(float(p[0]), float(p[1])) if isinstance(p, list) else (float(p["x"]), float(p["y"])) for p in raw]
    return args.points or []


def _output_path(output: Optional[str], result: CaptureResult) -> Path:
    if output is None:
        return Path(result.filename)
    path = Path(output)
    if path.is_dir() or output.endswith("/"):
        path.mkdir(parents=True, exist_ok=True)
        return path / result.filename
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _progress_printer(enabled: bool):
    if not enabled:
        return None
    state = {"last": -10.0}

    def report(percent: float) -> None:
        if percent - state["last"] >= 10:
            state["last"] = percent
            logger.info(f"Progress: {percent:.0f}%")

    return report


def _write_result(result: CaptureResult, output: Optional[str]) -> Path:
    path = _output_path(output, result)
    path.write_bytes(result.data)
    summary = json.loads(result.model_dump_json(exclude={"data"}))
    summary.update({"path": str(path), "size": result.size})
    print(json.dumps(summary, indent=2))
    return path


def _with_cache(args: argparse.Namespace, kind: str, params: dict, background, produce) -> CaptureResult:
    if args.no_cache:
        return produce()
    cache = ExportCache()
    key = generate_cache_key(kind, params, background)
    cached = cache.get(key)
    if cached is not None:
        logger.info(f"Using cached export {key[:16]}...")
        return cached
    result = produce()
    cache.store(key, result)
    return result


def _spec_from_args(args: argparse.Namespace) -> AnimationSpec:
    fields = {
        "label": args.label,
        "theme": args.theme,
        "aspect": args.aspect,
        "duration": args.duration,
        "effect": args.effect,
    }
    if args.fps is not None:
        fields["fps"] = args.fps
    return AnimationSpec(**fields)


def cmd_reveal(args: argparse.Namespace) -> int:
    spec = _spec_from_args(args)
    reencode = False if args.no_reencode else None
    params = {"spec": spec.model_dump(mode="json"), "reencode": reencode is not False}

    result = _with_cache(
        args,
        "reveal",
        params,
        args.background,
        lambda: export_reveal(
            spec,
            background=args.background,
            reencode=reencode,
            realtime=not args.fast,
            on_progress=_progress_printer(args.progress),
        ),
    )
    _write_result(result, args.output)
    return 0


def cmd_map(args: argparse.Namespace) -> int:
    settings = get_settings()
    points = _load_points(args)
    style = AnimationStyleConfig(
        style=args.style,
        speed=args.speed,
        color=args.color,
        thickness=args.thickness,
    )
    size = (args.width or settings.map_width, args.height or settings.map_height)
    reencode = False if args.no_reencode else None
    params = {
        "points": points,
        "style": style.model_dump(mode="json"),
        "size": size,
        "fps": settings.map_fps,
        "reencode": reencode is not False,
    }

    result = _with_cache(
        args,
        "map",
        params,
        args.background,
        lambda: export_path(
            points,
            style,
            background=args.background,
            size=size,
            reencode=reencode,
            realtime=not args.fast,
            on_progress=_progress_printer(args.progress),
        ),
    )
    _write_result(result, args.output)
    return 0


def cmd_frame(args: argparse.Namespace) -> int:
    spec = _spec_from_args(args)
    renderer = HeadlineRenderer(spec, background=args.background)
    if not 0 <= args.frame <= spec.total_frames:
        logger.error(f"frame must be between 0 and {spec.total_frames}")
        return 1
    image = renderer.render(args.frame)
    output = Path(args.output or f"{spec.filename_stem}-{args.frame:05d}.png")
    output.parent.mkdir(parents=True, exist_ok=True)
    image.save(output, format="PNG")
    state = renderer.state_at(args.frame)
    print(f"{output}: progress={state.progress:.4f} phase={state.phase}")
    return 0


def cmd_encoders(args: argparse.Namespace) -> int:
    settings = get_settings()
    print(f"ffmpeg: {settings.ffmpeg_binary} (version {get_ffmpeg_version(settings.ffmpeg_binary)})")
    is_supported = ffmpeg_support_probe(settings.ffmpeg_binary)
    selected = None
    for candidate in CODEC_CANDIDATES:
        supported = is_supported(candidate)
        if supported and selected is None:
            selected = candidate
        marker = "*" if candidate is selected else " "
        status = "yes" if supported else "no"
        print(f" {marker} {candidate.mime_type:<32} {candidate.encoder:<12} {status}")
    if selected is None:
        print("No supported codec; captures will fail")
        return 1
    return 0


def _add_reveal_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--label", required=True, help="Headline text (max 25 characters)")
    parser.add_argument("--theme", default=Theme.LIGHT.value, choices=[t.value for t in Theme])
    parser.add_argument("--aspect", default=Aspect.LANDSCAPE.value, choices=[a.value for a in Aspect])
    parser.add_argument(
        "--duration", default=DurationChoice.AUTO.value, choices=[d.value for d in DurationChoice]
    )
    parser.add_argument(
        "--effect", default=RevealEffect.SEARCH.value, choices=[e.value for e in RevealEffect]
    )
    parser.add_argument("--fps", type=int, default=None, help="Frame rate (default from settings)")
    parser.add_argument("--background", default=None, help="Background image path or data URI")


def _add_export_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", default=None, help="Output file or directory")
    parser.add_argument(
        "--fast", action="store_true",
        help="Encode frames back to back instead of at the nominal frame rate",
    )
    parser.add_argument("--no-reencode", action="store_true", help="Keep the captured container")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the export cache")
    parser.add_argument("--progress", action="store_true", help="Log progress every 10%%")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="newsreel", description="Animated headline and map videos")
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    reveal = sub.add_parser("reveal", help="Record a headline reveal video")
    _add_reveal_arguments(reveal)
    _add_export_arguments(reveal)
    reveal.set_defaults(func=cmd_reveal)

    map_parser = sub.add_parser("map", help="Record a map path animation")
    map_parser.add_argument("--points", type=parse_points, default=None, help='Points as "x,y x,y ..."')
    map_parser.add_argument("--points-file", default=None, help="JSON list of [x, y] or {x, y}")
    map_parser.add_argument(
        "--style", default=PathStyle.GLOWING_TRAIL.value, choices=[s.value for s in PathStyle]
    )
    map_parser.add_argument("--speed", type=float, default=1.0)
    map_parser.add_argument("--color", default="#ff0000")
    map_parser.add_argument("--thickness", type=int, default=3)
    map_parser.add_argument("--width", type=int, default=None)
    map_parser.add_argument("--height", type=int, default=None)
    map_parser.add_argument("--background", default=None, help="Map image path or data URI")
    _add_export_arguments(map_parser)
    map_parser.set_defaults(func=cmd_map)

    frame = sub.add_parser("frame", help="Render one reveal frame to PNG")
    _add_reveal_arguments(frame)
    frame.add_argument("--frame", type=int, default=0, help="Frame index")
    frame.add_argument("--output", default=None, help="Output PNG path")
    frame.set_defaults(func=cmd_frame)

    encoders = sub.add_parser("encoders", help="Show codec support of the local ffmpeg")
    encoders.set_defaults(func=cmd_encoders)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or get_settings().log_level)

    try:
        code = args.func(args)
    except ValidationError as e:
        logger.error(f"Invalid parameters: {e}")
        code = 2
    except (CaptureError, FFmpegError, GeometryUnderflow) as e:
        logger.error(f"Export failed: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
