from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from .geometry import suggest_quarter_inch_border
from .models import DEFAULT_CONFIG
from .pdf_exporter import SetupSheetBuilder, summary_lines
from .persistence import CalculatorSession, JsonFileStorage
from .presets import apply_preset, settings_from_state
from .sharing import build_share_url, decode_preset, encode_preset, token_from_url
from .sizes import CUSTOM, DEFAULT_TABLES
from .state import BorderCalculator
from .utils import ValidationError, format_inches, parse_float, parse_positive_float, slugify

logger = logging.getLogger(__name__)


def _die(message: str, code: int = 2) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="border-calc",
        description="Work out print size and easel blade positions for a darkroom print.",
    )
    parser.add_argument("--paper", choices=DEFAULT_TABLES.paper_values(), help="paper size")
    parser.add_argument("--ratio", choices=DEFAULT_TABLES.ratio_values(), help="image aspect ratio")
    parser.add_argument("--paper-width", help="custom paper width (in)")
    parser.add_argument("--paper-height", help="custom paper height (in)")
    parser.add_argument("--ratio-width", help="custom ratio width")
    parser.add_argument("--ratio-height", help="custom ratio height")
    parser.add_argument("--border", help="minimum border (in)")

    orientation = parser.add_mutually_exclusive_group()
    orientation.add_argument("--landscape", dest="landscape", action="store_true", default=None)
    orientation.add_argument("--portrait", dest="landscape", action="store_false")
    parser.add_argument("--flip-ratio", action="store_true", help="swap the image ratio")

    parser.add_argument(
        "--offset",
        nargs=2,
        metavar=("H", "V"),
        help="shift the print horizontally and vertically (in)",
    )
    parser.add_argument("--ignore-border", action="store_true", help="let offsets run past the border")
    parser.add_argument("--readings", action="store_true", help="show easel scale readings")
    parser.add_argument("--suggest", action="store_true", help="suggest a border giving quarter-inch print sizes")

    parser.add_argument("--share", metavar="NAME", help="print a share token for the result")
    parser.add_argument("--share-url", metavar="BASE", help="wrap the share token in this URL")
    parser.add_argument("--from-token", metavar="TOKEN", help="start from a shared preset token or URL")

    parser.add_argument("--pdf", metavar="PATH", help="write a setup sheet PDF (file or directory)")
    parser.add_argument(
        "--state-file",
        metavar="PATH",
        nargs="?",
        const=DEFAULT_CONFIG.state_path,
        help="restore and save settings in PATH",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
    return parser


def _apply_arguments(calculator: BorderCalculator, args: argparse.Namespace) -> None:
    if args.from_token:
        token = token_from_url(args.from_token) or args.from_token
        preset = decode_preset(token)
        if preset is None:
            raise ValidationError("--from-token", "not a valid preset token")
        apply_preset(calculator, preset)
        print(f"Loaded preset: {preset.name}")

    if args.paper:
        calculator.set_paper_size(args.paper)
    if args.ratio:
        calculator.set_aspect_ratio(args.ratio)

    for option, key in (
        ("paper_width", "custom_paper_width"),
        ("paper_height", "custom_paper_height"),
        ("ratio_width", "custom_aspect_width"),
        ("ratio_height", "custom_aspect_height"),
    ):
        raw = getattr(args, option)
        if raw is not None:
            calculator.set_numeric_input(key, parse_positive_float(raw, f"--{option.replace('_', '-')}"))

    if args.border is not None:
        calculator.set_numeric_input("min_border", parse_float(args.border, "--border"))
    if args.landscape is not None and args.landscape != calculator.state.is_landscape:
        calculator.toggle_landscape()
    if args.flip_ratio:
        calculator.toggle_ratio_flip()

    if args.offset:
        horizontal = parse_float(args.offset[0], "--offset")
        vertical = parse_float(args.offset[1], "--offset")
        calculator.batch_update(
            {
                "enable_offset": True,
                "horizontal_offset": horizontal,
                "last_valid_horizontal_offset": horizontal,
                "vertical_offset": vertical,
                "last_valid_vertical_offset": vertical,
            }
        )
    if args.ignore_border:
        calculator.set_field("ignore_min_border", True)
    if args.readings:
        calculator.set_field("show_blade_readings", True)


def _report(calculator: BorderCalculator, args: argparse.Namespace) -> int:
    calculation = calculator.calculation
    for line in summary_lines(calculation):
        print(line)

    if args.suggest:
        geometry = calculation.geometry
        suggestion = suggest_quarter_inch_border(geometry.paper, calculation.resolved.ratio, geometry.print_size)
        if suggestion is None:
            print("Quarter-inch border: print already lands on quarter inches")
        else:
            print(f"Quarter-inch border: {format_inches(suggestion)} in")

    if args.share:
        token = encode_preset(args.share, settings_from_state(calculator.state))
        if token is None:
            return _die("these settings cannot be shared", code=1)
        print(build_share_url(args.share_url, token) if args.share_url else token)

    if args.pdf:
        title = args.share or None
        path = args.pdf
        if os.path.isdir(path):
            path = os.path.join(path, f"{slugify(title or '')}.pdf")
        SetupSheetBuilder(calculation, path, title=title).generate_pdf()
        print(f"Setup sheet: {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    session: Optional[CalculatorSession] = None
    if args.state_file:
        session = CalculatorSession(JsonFileStorage(args.state_file))
        calculator = session.calculator
    else:
        calculator = BorderCalculator()

    try:
        _apply_arguments(calculator, args)
        if (args.paper_width or args.paper_height) and calculator.state.paper_size != CUSTOM:
            logger.info("Custom paper dimensions given without --paper custom; they are stored but unused")
        code = _report(calculator, args)
        if session is not None:
            session.flush()
        return code
    except ValidationError as exc:
        return _die(str(exc))
    finally:
        if session is not None:
            session.close()


if __name__ == "__main__":
    sys.exit(main())
