"""
Command-line interface.

    xfs glob 'src/**/*.py'
    xfs convert family.csv family.yaml
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from xfilesystem import config
from xfilesystem.csv_codec import ParseMode
from xfilesystem.errors import XFilesystemError, format_error_message
from xfilesystem.filesystem import XFilesystem
from xfilesystem.glob_resolver import GlobFlags

logger = logging.getLogger(__name__)

FORMATS = ("text", "json", "yaml", "csv", "python")

_EXTENSIONS = {
    ".txt": "text",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".csv": "csv",
    ".py": "python",
}


def guess_format(path: str) -> Optional[str]:
    """Infer a format name from a file extension."""
    return _EXTENSIONS.get(os.path.splitext(path)[1].lower())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xfs", description="Structured file access")
    parser.add_argument("--allow-remote", action="store_true", help="Allow reading from HTTP(S) URLs")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    glob_cmd = sub.add_parser("glob", help="Find paths by a glob pattern (supports **)")
    glob_cmd.add_argument("pattern")
    glob_cmd.add_argument("--only-dir", action="store_true", help="Only list directories")
    glob_cmd.add_argument("--mark", action="store_true", help="Append a separator to directories")
    glob_cmd.add_argument("--no-sort", action="store_true", help="Keep filesystem order")

    convert = sub.add_parser("convert", help="Read a file in one format and dump it in another")
    convert.add_argument("source")
    convert.add_argument("target")
    convert.add_argument("--from", dest="source_format", choices=FORMATS)
    convert.add_argument("--to", dest="target_format", choices=FORMATS)
    convert.add_argument("--delimiter", default=config.DEFAULT_DELIMITER)
    convert.add_argument("--enclosure", default=config.DEFAULT_ENCLOSURE)
    convert.add_argument("--escape-char", default=config.DEFAULT_ESCAPE_CHAR)
    convert.add_argument("--charset", default=config.DEFAULT_CHARSET)
    return parser


def _run_glob(xfs: XFilesystem, args: argparse.Namespace) -> int:
    flags = GlobFlags.NONE
    if args.only_dir:
        flags |= GlobFlags.ONLYDIR
    if args.mark:
        flags |= GlobFlags.MARK
    if args.no_sort:
        flags |= GlobFlags.NOSORT

    for path in xfs.glob(args.pattern, flags):
        print(path)
    return 0


def _read(xfs: XFilesystem, path: str, fmt: str, args: argparse.Namespace):
    if fmt == "text":
        return xfs.read_file(path, encoding=args.charset)
    if fmt == "json":
        return xfs.read_json_file(path, ParseMode.ASSOC)
    if fmt == "yaml":
        return xfs.read_yaml_file(path, ParseMode.ASSOC)
    if fmt == "csv":
        return xfs.read_csv_file(
            path,
            ParseMode.ASSOC,
            delimiter=args.delimiter,
            charset=args.charset,
            enclosure=args.enclosure,
            escape_char=args.escape_char,
        )
    return xfs.read_python_file(path)


def _dump(xfs: XFilesystem, path: str, fmt: str, data, args: argparse.Namespace) -> None:
    if fmt == "text":
        xfs.dump_file(path, data if isinstance(data, str) else str(data))
    elif fmt == "json":
        xfs.dump_json_file(path, data)
    elif fmt == "yaml":
        xfs.dump_yaml_file(path, data)
    elif fmt == "csv":
        xfs.dump_csv_file(
            path,
            data,
            delimiter=args.delimiter,
            enclosure=args.enclosure,
            escape_char=args.escape_char,
        )
    else:
        xfs.dump_python_file(path, data)


def _run_convert(xfs: XFilesystem, args: argparse.Namespace) -> int:
    source_format = args.source_format or guess_format(args.source)
    target_format = args.target_format or guess_format(args.target)
    if source_format is None or target_format is None:
        unknown = args.source if source_format is None else args.target
        print(f"Cannot infer format of {unknown}; use --from/--to", file=sys.stderr)
        return 2

    data = _read(xfs, args.source, source_format, args)
    _dump(xfs, args.target, target_format, data, args)
    logger.info(f"Converted {args.source} ({source_format}) to {args.target} ({target_format})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    xfs = XFilesystem(remote_allowed=args.allow_remote or config.ALLOW_REMOTE)
    try:
        if args.command == "glob":
            return _run_glob(xfs, args)
        return _run_convert(xfs, args)
    except XFilesystemError as e:
        print(format_error_message(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
