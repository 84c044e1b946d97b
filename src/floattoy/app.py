from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence, TextIO

from .datatypes import FLOAT_FORMATS, FormatDescriptor, ParseFailure, ValidationError, parse_format_name
from .session import DisplaySnapshot, FormatEditor
from .textio import grouped_bit_string, parse_decimal_input

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def format_report(snapshot: DisplaySnapshot) -> str:
    descriptor = snapshot.descriptor
    sign, exponent_field, fraction_field = snapshot.fields
    lines = [
        f"{descriptor.key} ({descriptor.name}, bias {descriptor.bias})",
        f"  bits     {grouped_bit_string(descriptor, snapshot.bits)}",
        f"  hex      {snapshot.hex_text}",
        f"  fields   sign={sign} exponent={exponent_field} fraction={fraction_field}",
        f"  class    {snapshot.decoded.classification.value}",
        f"  value    {snapshot.formula}",
    ]
    return "\n".join(lines)


def inspect_values(
    values: Sequence[float],
    descriptors: Sequence[FormatDescriptor],
    out: TextIO | None = None,
) -> None:
    out = sys.stdout if out is None else out
    first = True
    for value in values:
        for descriptor in descriptors:
            if not first:
                print("", file=out)
            first = False
            editor = FormatEditor(descriptor)
            print(format_report(editor.set_value(value)), file=out)


def _format_arg(text: str) -> FormatDescriptor:
    try:
        return parse_format_name(text)
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _value_arg(text: str) -> float:
    try:
        return parse_decimal_input(text)
    except ParseFailure as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="floattoy",
        description="Inspect and edit the bits of floating-point numbers.",
        epilog="Use '--' before negative symbolic values, e.g. floattoy --inspect -- -Infinity.",
    )
    parser.add_argument(
        "values",
        nargs="*",
        type=_value_arg,
        metavar="VALUE",
        help="decimal values to inspect (NaN and Infinity accepted)",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="formats",
        action="append",
        type=_format_arg,
        metavar="NAME",
        help=(
            f"format to show, one of {', '.join(FLOAT_FORMATS)} or a custom name like S1E4M3; "
            "repeatable (default: all built-in formats)"
        ),
    )
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="print the decomposition of each VALUE instead of opening the window",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="logging level (default: WARNING)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    descriptors = args.formats or list(FLOAT_FORMATS.values())

    if args.inspect:
        if not args.values:
            parser.error("--inspect needs at least one VALUE")
        inspect_values(args.values, descriptors)
        return 0

    if args.values:
        parser.error("VALUE arguments are only used with --inspect")

    from .visualizer import FloatToyApp

    logger.info("Starting with formats: %s", ", ".join(d.name for d in descriptors))
    app = FloatToyApp(descriptors)
    app.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
