# Command line entry point
import argparse
import os
import sys
from typing import Any, Optional, Sequence, Tuple

from pixel_pipeline.io.image_saver import RenderRequest, SUPPORTED_FORMATS, format_size
from pixel_pipeline.processing.adjustment_state import AdjustmentState
from pixel_pipeline.processing.compositor import CanvasRenderer
from pixel_pipeline.processing.presets import BUILTIN_PRESETS
from pixel_pipeline.services.editing_engine import Engine
from pixel_pipeline.utils.errors import AppError, InvalidAdjustmentError, format_user_error
from pixel_pipeline.utils.geometry import ASPECT_RATIOS
from pixel_pipeline.utils.logger import LOG_LEVEL_MAP, get_logger, set_level

logger = get_logger(__name__)

_BOOL_VALUES = {"true": True, "yes": True, "on": True, "1": True,
                "false": False, "no": False, "off": False, "0": False}


def _parse_assignment(text: str) -> Tuple[str, Any]:
    """``name=value`` -> (name, float or bool)."""
    name, sep, raw = text.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value, got {text!r}")
    name = AdjustmentState.canonical_name(name.strip())
    raw = raw.strip()
    if name in AdjustmentState.field_names() and AdjustmentState.domain(name) is None:
        value = _BOOL_VALUES.get(raw.lower())
        if value is None:
            raise argparse.ArgumentTypeError(f"{name} expects true/false, got {raw!r}")
        return name, value
    try:
        return name, float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{name} expects a number, got {raw!r}") from None


def _parse_ints(text: str, count: int, sep: str) -> Tuple[int, ...]:
    parts = text.lower().split(sep)
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} values separated by '{sep}', got {text!r}")
    try:
        return tuple(int(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integers, got {text!r}") from None


def _crop_arg(text: str) -> Tuple[int, ...]:
    return _parse_ints(text, 4, ",")


def _size_arg(text: str) -> Tuple[int, ...]:
    return _parse_ints(text, 2, "x")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-pipeline",
        description="Apply non-destructive adjustments to an image and export the result.",
    )
    parser.add_argument("input", help="Source image file")
    parser.add_argument("-o", "--output", required=True, help="Destination file")
    parser.add_argument(
        "--set", dest="adjustments", action="append", default=[], type=_parse_assignment,
        metavar="NAME=VALUE",
        help="Adjustment to apply, e.g. --set contrast=20 --set flip_horizontal=true (repeatable)",
    )
    parser.add_argument("--crop", type=_crop_arg, metavar="X,Y,W,H", help="Crop the image before adjusting")
    parser.add_argument("--aspect", choices=list(ASPECT_RATIOS), help="Lock --crop to an aspect ratio, keeping its top-left corner")
    parser.add_argument("--resize", type=_size_arg, metavar="WxH", help="Resize the image before adjusting")
    parser.add_argument("--keep-aspect", action="store_true", help="Fit --resize inside WxH keeping the aspect ratio")
    parser.add_argument("--preset", choices=list(BUILTIN_PRESETS), help="Start from a preset look; --set values are applied on top")
    parser.add_argument("--auto-levels", action="store_true", help="Stretch channel levels before adjusting")
    parser.add_argument("--auto-white-balance", action="store_true", help="Gray-world white balance before adjusting")
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, help="Export format (default: from the output extension)")
    parser.add_argument("--quality", type=int, default=None, help="Quality 0-100 for jpg/webp/avif")
    parser.add_argument("--width", type=int, default=None, help="Export width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Export height in pixels")
    parser.add_argument("--log-level", choices=sorted(LOG_LEVEL_MAP), type=str.upper, default=None)
    return parser


def _export_format(args: argparse.Namespace) -> str:
    if args.format:
        return args.format
    ext = os.path.splitext(args.output)[1].lower().lstrip(".")
    if ext not in SUPPORTED_FORMATS:
        raise InvalidAdjustmentError(
            f"Cannot infer export format from '{args.output}'",
            field_name="format",
            user_message=f"Unknown output extension '.{ext}'. Use --format to choose one of: {', '.join(SUPPORTED_FORMATS)}",
        )
    return ext


def run(args: argparse.Namespace) -> int:
    engine = Engine(renderer=CanvasRenderer())
    engine.open(args.input)

    if args.crop:
        engine.crop(*args.crop, aspect=args.aspect)
    if args.resize:
        engine.resize(*args.resize, keep_aspect=args.keep_aspect)
    if args.auto_levels:
        engine.auto_levels()
    if args.auto_white_balance:
        engine.auto_white_balance()
    if args.preset:
        engine.apply_preset(args.preset)
    if args.adjustments:
        engine.update_adjustments(**dict(args.adjustments))

    request_kwargs = {"format": _export_format(args), "width": args.width, "height": args.height}
    if args.quality is not None:
        request_kwargs["quality"] = args.quality
    request = RenderRequest(**request_kwargs)

    result = engine.export(request)
    output = args.output
    if result.fell_back:
        output = os.path.splitext(output)[0] + "." + result.extension
        print(f"Warning: {result.warning}", file=sys.stderr)

    with open(output, "wb") as f:
        f.write(result.data)
    print(f"Wrote {output} ({result.width}x{result.height}, {format_size(len(result.data))})")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main function to run the command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    try:
        return run(args)
    except AppError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {format_user_error(e)}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {format_user_error(e, 'writing the output')}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
