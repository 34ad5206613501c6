"""
propcodec CLI - Command-line interface for .properties files.

Commands:
  propcodec inspect  - Show every property of a file as a table
  propcodec get      - Print the value of one property
  propcodec set      - Create or update a property (atomic rewrite)
  propcodec delete   - Remove a property (atomic rewrite)
  propcodec convert  - Convert to/from JSON or CSV
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from propcodec.errors import PropertiesError
from propcodec.spec import DEFAULT_ENCODING, EXTENSION

ENCODING_ENV = "PROPCODEC_ENCODING"


def _load(args: argparse.Namespace, missing_ok: bool = False):
    from propcodec.document import PropertiesStore
    from propcodec.reader import PropertiesReader

    path = Path(args.path)
    if not path.is_file():
        if missing_ok:
            return PropertiesStore()
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        sys.exit(1)
    return PropertiesReader.load(path, encoding=args.encoding)


def _check_output(output: str) -> None:
    if ".." in Path(output).parts:
        print("Error: Output path must not contain '..' (path traversal)", file=sys.stderr)
        sys.exit(1)


def _write_options(args: argparse.Namespace) -> dict:
    return {
        "comments": getattr(args, "comments", None),
        "enable_timestamp": not getattr(args, "no_timestamp", False),
        "enable_unicode_escape": not getattr(args, "no_unicode_escape", False),
        "encoding": args.encoding,
    }


def cmd_inspect(args: argparse.Namespace) -> None:
    """Show all properties of a file."""
    from rich.console import Console
    from rich.table import Table

    store = _load(args)
    table = Table(title=args.path, caption=f"{len(store)} properties ({args.encoding})")
    table.add_column("Key", style="bold cyan", overflow="fold")
    table.add_column("Value", overflow="fold")
    for key, value in store.items():
        table.add_row(key, value)
    Console().print(table)


def cmd_get(args: argparse.Namespace) -> None:
    """Print the value of one property."""
    store = _load(args)
    value = store.get(args.key, args.default)
    if value is None:
        print(f"Property '{args.key}' not found.", file=sys.stderr)
        sys.exit(1)
    print(value)


def cmd_set(args: argparse.Namespace) -> None:
    """Create or update one property, rewriting the file atomically."""
    _check_output(args.path)
    store = _load(args, missing_ok=True)
    store.set(args.key, args.value)
    nbytes = store.write(args.path, **_write_options(args))
    print(f"Saved {args.path} ({nbytes} bytes)")


def cmd_delete(args: argparse.Namespace) -> None:
    """Remove one property, rewriting the file atomically."""
    _check_output(args.path)
    store = _load(args)
    if not store.delete(args.key):
        print(f"Property '{args.key}' not found.", file=sys.stderr)
        sys.exit(1)
    nbytes = store.write(args.path, **_write_options(args))
    print(f"Saved {args.path} ({nbytes} bytes)")


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert to/from JSON or CSV."""
    from propcodec.converters import convert_from, convert_to

    if args.direction == "from":
        input_path = Path(args.path)
        if not input_path.is_file():
            print(f"Error: File not found: {args.path}", file=sys.stderr)
            sys.exit(1)
        store = convert_from(input_path.read_text(encoding="utf-8"), args.format)
        output = args.output or input_path.stem + EXTENSION
        _check_output(output)
        nbytes = store.write(output, **_write_options(args))
        print(f"Converted {args.path} -> {output} ({nbytes} bytes)")
        return

    store = _load(args)
    result = convert_to(store, args.format)
    if args.output:
        _check_output(args.output)
        Path(args.output).write_text(result, encoding="utf-8")
        print(f"Converted {args.path} -> {args.output}")
    else:
        print(result)


def _add_write_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--comments", help="Comment block written at the top of the file")
    parser.add_argument("--no-timestamp", action="store_true", help="Do not write a timestamp comment")
    parser.add_argument(
        "--no-unicode-escape", action="store_true",
        help="Write non-ASCII characters as-is instead of \\uxxxx escapes",
    )


def build_parser() -> argparse.ArgumentParser:
    from propcodec import __version__

    parser = argparse.ArgumentParser(
        prog="propcodec",
        description="propcodec - read and write Java .properties files.",
    )
    parser.add_argument("--version", action="version", version=f"propcodec {__version__}")
    parser.add_argument(
        "-e", "--encoding",
        default=os.environ.get(ENCODING_ENV, DEFAULT_ENCODING),
        help=f"Byte encoding of .properties files (default: ${ENCODING_ENV} or {DEFAULT_ENCODING})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command")

    # inspect
    p_inspect = sub.add_parser("inspect", help="Show every property of a file")
    p_inspect.add_argument("path", help="Path to .properties file")

    # get
    p_get = sub.add_parser("get", help="Print the value of a property")
    p_get.add_argument("path", help="Path to .properties file")
    p_get.add_argument("key", help="Property key")
    p_get.add_argument("-d", "--default", help="Value printed when the key is missing")

    # set
    p_set = sub.add_parser("set", help="Create or update a property")
    p_set.add_argument("path", help="Path to .properties file (created if missing)")
    p_set.add_argument("key", help="Property key")
    p_set.add_argument("value", help="Property value")
    _add_write_flags(p_set)

    # delete
    p_delete = sub.add_parser("delete", help="Remove a property")
    p_delete.add_argument("path", help="Path to .properties file")
    p_delete.add_argument("key", help="Property key")
    _add_write_flags(p_delete)

    # convert
    p_convert = sub.add_parser("convert", help="Convert to/from JSON or CSV")
    p_convert.add_argument("direction", choices=["to", "from"], help="Conversion direction")
    p_convert.add_argument("format", choices=["json", "csv"], help="Other format")
    p_convert.add_argument("path", help="Input file (.properties for 'to', json/csv for 'from')")
    p_convert.add_argument("-o", "--output", help="Output file path")
    _add_write_flags(p_convert)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "inspect": cmd_inspect,
        "get": cmd_get,
        "set": cmd_set,
        "delete": cmd_delete,
        "convert": cmd_convert,
    }

    try:
        commands[args.command](args)
    except (PropertiesError, ValueError, UnicodeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
