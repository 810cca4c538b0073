# SPDX-License-Identifier: Apache-2.0
"""
PDF Text Editor - CLI Tool

Lists the editable text runs of a PDF, replaces runs and adds new text
boxes, then writes a patched copy of the document.

Usage:
    edit-pdf <input.pdf> [options]

Examples:
    edit-pdf invoice.pdf --list                        # Show text runs
    edit-pdf invoice.pdf --list --json                 # Runs as JSON
    edit-pdf invoice.pdf --replace "1:0=Invoice #002"  # Replace run 1-0
    edit-pdf invoice.pdf --add "1:50,100=PAID"         # Add a text box
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any, NoReturn

from pdf_text_editor.core.config import STANDARD_FONTS, EditorConfig
from pdf_text_editor.core.models import BLACK, WHITE, Color, Point, RunId
from pdf_text_editor.errors import EditorError
from pdf_text_editor.session.document_session import DocumentSession

logger = logging.getLogger(__name__)


def parse_replacement(value: str) -> tuple[RunId, str]:
    """Parse ``PAGE:INDEX=TEXT`` into a run id and replacement text.

    Raises:
        argparse.ArgumentTypeError: If the value is malformed.
    """
    target, sep, text = value.partition("=")
    page, colon, index = target.partition(":")
    if not sep or not colon:
        raise argparse.ArgumentTypeError(f"Expected PAGE:INDEX=TEXT, got {value!r}")
    try:
        run_id = RunId(page_number=int(page), index=int(index))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid run reference: {target!r}") from exc
    if run_id.page_number < 1 or run_id.index < 0:
        raise argparse.ArgumentTypeError(f"Invalid run reference: {target!r}")
    return run_id, text


def parse_addition(value: str) -> tuple[int, Point, str]:
    """Parse ``PAGE:X,Y=TEXT`` into a page, a viewport point and text.

    Raises:
        argparse.ArgumentTypeError: If the value is malformed.
    """
    target, sep, text = value.partition("=")
    page, colon, coords = target.partition(":")
    x, comma, y = coords.partition(",")
    if not sep or not colon or not comma:
        raise argparse.ArgumentTypeError(f"Expected PAGE:X,Y=TEXT, got {value!r}")
    try:
        page_number = int(page)
        point = Point(float(x), float(y))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid position: {target!r}") from exc
    if page_number < 1:
        raise argparse.ArgumentTypeError(f"Invalid page number: {page!r}")
    return page_number, point, text


def parse_color(value: str) -> Color:
    """Parse a ``#rrggbb`` color.

    Raises:
        argparse.ArgumentTypeError: If the value is not a hex color.
    """
    try:
        return Color.from_hex(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected #RRGGBB, got {value!r}") from exc


def parse_background(value: str) -> Color | None:
    """Parse a ``#rrggbb`` background color, or ``none`` for no background."""
    if value.lower() == "none":
        return None
    return parse_color(value)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="edit-pdf",
        description="PDF Text Editor - Replace and add text in PDF documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s invoice.pdf --list                         # List text runs
  %(prog)s invoice.pdf --replace "1:0=Invoice #002"   # Replace run 0 on page 1
  %(prog)s invoice.pdf --replace "1:3="               # Erase run 3 on page 1
  %(prog)s invoice.pdf --add "1:50,100=PAID" --zoom 2 # Text box at viewport (50, 100)
  %(prog)s invoice.pdf -r "1:0=New" -o out.pdf        # Specify output file
  %(prog)s invoice.pdf -a "1:50,100=PAID" --color "#c80000" --background none
""",
    )

    # Input file
    parser.add_argument(
        "input",
        type=Path,
        help="Path to PDF file to edit",
    )

    # Output options
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file path (default: <input>_edited.pdf)",
    )

    parser.add_argument(
        "-z",
        "--zoom",
        type=float,
        default=1.0,
        help="Viewport zoom for listing and --add coordinates (default: 1.0)",
    )

    # Listing options
    list_group = parser.add_argument_group("Listing options")
    list_group.add_argument(
        "-l",
        "--list",
        action="store_true",
        help="Print the text runs of every page",
    )
    list_group.add_argument(
        "--json",
        action="store_true",
        help="Print the listing as JSON",
    )

    # Edit options
    edit_group = parser.add_argument_group("Edit options")
    edit_group.add_argument(
        "-r",
        "--replace",
        type=parse_replacement,
        action="append",
        default=[],
        metavar="PAGE:INDEX=TEXT",
        help="Replace the text of run PAGE-INDEX (repeatable, empty TEXT erases)",
    )
    edit_group.add_argument(
        "-a",
        "--add",
        type=parse_addition,
        action="append",
        default=[],
        metavar="PAGE:X,Y=TEXT",
        help="Add a text box with its top-left corner at viewport X,Y (repeatable)",
    )
    edit_group.add_argument(
        "--color",
        type=parse_color,
        default=BLACK,
        metavar="#RRGGBB",
        help="Text color of added text boxes (default: #000000)",
    )
    edit_group.add_argument(
        "--background",
        type=parse_background,
        default=WHITE,
        metavar="#RRGGBB|none",
        help="Background of added text boxes, or 'none' (default: #ffffff)",
    )
    edit_group.add_argument(
        "--font",
        default="Helvetica",
        choices=sorted(STANDARD_FONTS),
        help="Substitute font for edited and added text (default: Helvetica)",
    )
    edit_group.add_argument(
        "--padding",
        type=float,
        default=1.0,
        help="Cover rectangle padding in PDF units (default: 1.0)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    args = parser.parse_args()
    if args.zoom <= 0:
        parser.error("--zoom must be > 0")
    if args.padding < 0:
        parser.error("--padding must be >= 0")
    return args


def default_output_path(input_path: Path) -> Path:
    """``<dir>/<stem>_edited.pdf`` next to the input."""
    return input_path.with_name(f"{input_path.stem}_edited.pdf")


async def list_runs(session: DocumentSession, zoom: float, as_json: bool) -> None:
    """Print the runs of every page."""
    pages: list[dict[str, Any]] = []
    for page_number in range(1, session.page_count + 1):
        view = await session.show_page(page_number, zoom)
        runs = view.runs if view is not None else []
        pages.append(
            {"page_number": page_number, "runs": [run.to_dict() for run in runs]}
        )
        if as_json:
            continue
        print(f"Page {page_number}:")
        for run in runs:
            print(
                f"  [{run.run_id}] ({run.pdf_position.x:.1f}, {run.pdf_position.y:.1f}) "
                f"{run.pdf_font_size:.1f}pt {run.current_text!r}"
            )

    if as_json:
        print(json.dumps({"pages": pages}, ensure_ascii=False, indent=2))


async def apply_edits(session: DocumentSession, args: argparse.Namespace) -> None:
    """Record every --replace and --add request in the session.

    Raises:
        KeyError: If a --replace names a run that does not exist.
    """
    replacements: dict[int, list[tuple[RunId, str]]] = defaultdict(list)
    for run_id, text in args.replace:
        replacements[run_id.page_number].append((run_id, text))
    additions: dict[int, list[tuple[Point, str]]] = defaultdict(list)
    for page_number, point, text in args.add:
        additions[page_number].append((point, text))

    for page_number in sorted(set(replacements) | set(additions)):
        await session.show_page(page_number, args.zoom)
        for run_id, text in replacements.get(page_number, []):
            session.edit_run(run_id, text)
        for point, text in additions.get(page_number, []):
            overlay = session.add_overlay(point)
            session.overlays.update(overlay.id, text=text)


async def run(args: argparse.Namespace) -> int:
    """Execute the requested listing and edits.

    Args:
        args: Command line arguments.

    Returns:
        Exit code (0: success, 1: failure).
    """
    input_path: Path = args.input

    # Validate input file
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1
    if input_path.suffix.lower() != ".pdf":
        print(f"Error: Not a PDF file: {input_path}", file=sys.stderr)
        return 1

    config = EditorConfig(
        substitute_font=args.font,
        cover_padding=args.padding,
        default_zoom=args.zoom,
        overlay_text_color=args.color,
        overlay_background_enabled=args.background is not None,
        overlay_background_color=args.background or WHITE,
    )
    session = DocumentSession(config)

    try:
        await session.load(input_path.read_bytes())

        if args.list:
            await list_runs(session, args.zoom, args.json)

        if not args.replace and not args.add:
            if not args.list:
                print("Nothing to do: use --list, --replace or --add")
            return 0

        try:
            await apply_edits(session, args)
        except KeyError as e:
            print(f"Error: No text run {e.args[0]}", file=sys.stderr)
            return 1

        output_path: Path = args.output or default_output_path(input_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        result = await session.save()
        output_path.write_bytes(result.pdf_bytes)
    except EditorError as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1
    finally:
        await session.close()

    # Display results
    stats = result.stats
    print(f"Complete: {output_path}")
    print(f"  Covers: {stats.get('covers', 0)}")
    print(f"  Redraws: {stats.get('redraws', 0)}")
    print(f"  Overlays: {stats.get('overlays', 0)}")
    print(f"  Pages: {stats.get('pages', 0)}")
    return 0


def main() -> NoReturn:
    """Main entry point."""
    args = parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    exit_code = asyncio.run(run(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
