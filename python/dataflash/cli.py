"""dataflash command-line tool."""

from __future__ import annotations

import argparse
import logging
import sys

from .storage import LogReader, write_text


def cmd_dump(args: argparse.Namespace) -> None:
    """Dump a log file to stdout as text lines."""
    with LogReader(args.file) as reader:
        for record in reader.records():
            print(record.to_text())


def cmd_formats(args: argparse.Namespace) -> None:
    """Print every format a log declares."""
    with LogReader(args.file) as reader:
        for _ in reader.records():
            pass
        for fmt in reader.registry:
            print(f"[{fmt.type:3d}] {fmt.name:<6s} len={fmt.length:3d} "
                  f"format={fmt.format}")
            for code, column in zip(fmt.format, fmt.columns):
                print(f"        {column:20s} {code}")
            print()


def cmd_info(args: argparse.Namespace) -> None:
    """Print per-type record counts."""
    counts: dict[str, int] = {}
    total = 0
    with LogReader(args.file) as reader:
        for record in reader.records():
            counts[record.type_name] = counts.get(record.type_name, 0) + 1
            total += 1
        build = reader.registry.session.build_name
        kind = "text" if reader.is_text else "binary"

    print(f"File:     {args.file}")
    print(f"Kind:     {kind}")
    print(f"Vehicle:  {build or 'unknown'}")
    print(f"Records:  {total:,}")
    print(f"\nTypes ({len(counts)}):")
    for name, count in sorted(counts.items()):
        print(f"  {name:<8s}  {count:8,}")


def cmd_totext(args: argparse.Namespace) -> None:
    """Convert a log (usually binary) to the text format."""
    with LogReader(args.file) as reader:
        if args.output:
            with open(args.output, "w", encoding="utf-8") as out:
                write_text(reader.records(), out)
        else:
            write_text(reader.records(), sys.stdout)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="dataflash",
                                     description="DataFlash log decoder")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log skipped lines/frames and format registration")
    sub = parser.add_subparsers(dest="command")

    p_dump = sub.add_parser("dump", help="Dump a log file as text lines")
    p_dump.add_argument("file", help="Path to .bin or .log file")

    p_formats = sub.add_parser("formats", help="Show the formats a log declares")
    p_formats.add_argument("file", help="Path to .bin or .log file")

    p_info = sub.add_parser("info", help="Show summary info about a log file")
    p_info.add_argument("file", help="Path to .bin or .log file")

    p_totext = sub.add_parser("totext", help="Convert a log to text format")
    p_totext.add_argument("file", help="Path to .bin or .log file")
    p_totext.add_argument("-o", "--output", help="Output path (default stdout)")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")

    if args.command == "dump":
        cmd_dump(args)
    elif args.command == "formats":
        cmd_formats(args)
    elif args.command == "info":
        cmd_info(args)
    elif args.command == "totext":
        cmd_totext(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
