"""Command-line front door for myls.

Parses CLI options on top of config/environment defaults, collects the
requested paths, then prints plain file arguments followed by one section
per directory argument in argument order.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from functools import partial
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import TextIO

from .config import COLOR_MODES, ListingDefaults, debug_enabled, load_defaults
from .entries import collect_entries
from .git_status import RepoStatusCache, attach_status_to_files, query_repo_statuses
from .options import ListOptions
from .render import Styler, header_line, render_entries, section_title, write_lines
from .scan import scan_directories
from .sorting import SORT_KEY_CHOICES, SortKey, parse_sort_key, sort_entries

PROG_NAME = "myls"

ENVIRONMENT_HELP = """\
environment:
  MYLS_TIMEFMT_OLD, MYLS_TIMEFMT_NEW
                strftime formats for non-recent and recent files
  MYLS_DIRS_FIRST
                if set to a true value, enables -dirsfirst by default
  MYLS_GIT      if set to a true value, enables -git by default
  MYLS_GIT_TIMEOUT
                seconds to wait for git status (default: no limit)
  MYLS_DEBUG    if set to a true value, logs diagnostics to stderr
"""


def _sort_key_arg(value: str) -> SortKey:
    """argparse type for ``-sort`` words, aliases included."""
    key = parse_sort_key(value)
    if key is None:
        raise argparse.ArgumentTypeError(f"must be one of: {', '.join(SORT_KEY_CHOICES)}")
    return key


def program_version() -> str:
    try:
        return f"{PROG_NAME} {package_version(PROG_NAME)}"
    except PackageNotFoundError:
        return f"{PROG_NAME} unknown"


def build_parser(defaults: ListingDefaults) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="myls - My interpretation of the ls(1) command",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("paths", nargs="*", metavar="file", help="files or directories to display")
    parser.add_argument("-h", "-help", "--help", action="help", help="show this help message and exit")
    parser.add_argument(
        "-V",
        "-version",
        "--version",
        action="version",
        version=program_version(),
        help="show program's version number and exit",
    )
    parser.add_argument("-a", dest="show_all", action="store_true", help="do not ignore entries starting with .")
    parser.add_argument(
        "-d",
        dest="list_dirs_as_files",
        action="store_true",
        help="list directories themselves, not their contents",
    )
    parser.add_argument("-l", dest="long_format", action="store_true", help="use a long listing format")
    parser.add_argument("-r", dest="reverse", action="store_true", help="reverse order while sorting")
    parser.add_argument("-1", dest="one_per_line", action="store_true", help="display one entry per line")
    parser.add_argument(
        "-dirsfirst",
        "--dirs-first",
        dest="dirs_first",
        action="store_true",
        default=defaults.dirs_first,
        help="show directories above regular files",
    )
    parser.add_argument(
        "-git",
        "--git",
        dest="git",
        action="store_true",
        default=defaults.git,
        help="display git status",
    )
    parser.add_argument(
        "-sort",
        "--sort",
        dest="sort_key",
        type=_sort_key_arg,
        default=defaults.sort_key,
        metavar="WORD",
        help=f"one of: {', '.join(SORT_KEY_CHOICES)} (default: {defaults.sort_key.value})",
    )
    parser.add_argument(
        "-color",
        "--color",
        dest="color",
        choices=COLOR_MODES,
        default=defaults.color,
        metavar="WHEN",
        help=f"colorize output: {', '.join(COLOR_MODES)} (default: {defaults.color})",
    )
    return parser


def _color_enabled(mode: str, stream: TextIO) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _terminal_width() -> int:
    """Resolve line width from the terminal, 80 columns when unknown."""
    return max(1, shutil.get_terminal_size((80, 24)).columns)


def resolve_options(args: argparse.Namespace, defaults: ListingDefaults, stream: TextIO) -> ListOptions:
    return ListOptions(
        show_all=args.show_all,
        list_dirs_as_files=args.list_dirs_as_files,
        long_format=args.long_format,
        reverse=args.reverse,
        one_per_line=args.one_per_line,
        dirs_first=args.dirs_first,
        git=args.git,
        sort_key=args.sort_key,
        color=_color_enabled(args.color, stream),
        time_format_old=defaults.time_format_old,
        time_format_new=defaults.time_format_new,
        line_width=_terminal_width(),
    )


def configure_logging(debug: bool) -> None:
    logger = logging.getLogger(PROG_NAME)
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(f"{PROG_NAME}: %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def pass_raw_filenames(stream: TextIO) -> None:
    """Write undecodable file names back as their original bytes."""
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="surrogateescape")


def format_error(path: str, exc: OSError) -> str:
    reason = exc.strerror or str(exc)
    return f"{PROG_NAME}: {path}: {reason}"


def run(argv: list[str] | None = None, stdout: TextIO | None = None, stderr: TextIO | None = None) -> int:
    """Run one listing and return the process exit status.

    Returns ``1`` when nothing could be listed at all; partial failures are
    reported on ``stderr`` and still return ``0``.
    """
    out = stdout if stdout is not None else sys.stdout
    err = stderr if stderr is not None else sys.stderr
    pass_raw_filenames(out)
    pass_raw_filenames(err)

    defaults = load_defaults()
    args = build_parser(defaults).parse_args(argv)
    options = resolve_options(args, defaults, out)

    def report_error(path: str, exc: OSError) -> None:
        err.write(format_error(path, exc) + "\n")

    files, dirs = collect_entries(args.paths, options.list_dirs_as_files, on_error=report_error)
    if not files and not dirs:
        return 1
    show_dir_header = bool(files) or len(dirs) > 1

    cache = RepoStatusCache(query=partial(query_repo_statuses, timeout_seconds=defaults.git_timeout))
    if options.wants_git_status:
        files = attach_status_to_files(files, cache)
    sort_entries(files, options.sort_key, options.reverse, options.dirs_first)

    if options.long_format and options.color:
        out.write(header_line(Styler(options.color)) + "\n")

    write_lines(render_entries(files, options, on_error=report_error), out.write)
    printed_section = bool(files)

    sort_entries(dirs, options.sort_key, options.reverse, options.dirs_first)
    listed_any = bool(files)
    for listing in scan_directories(dirs, options, cache):
        for path, exc in listing.child_errors:
            report_error(path, exc)
        if listing.error is not None:
            report_error(listing.directory.name, listing.error)
            continue

        listed_any = True
        if printed_section:
            out.write("\n")
        if show_dir_header:
            out.write(section_title(listing.directory.name) + "\n")
        write_lines(render_entries(listing.entries, options, on_error=report_error), out.write)
        printed_section = True

    out.flush()
    return 0 if listed_any else 1


def main(argv: list[str] | None = None) -> int:
    """Console-script entrypoint."""
    configure_logging(debug_enabled())
    return run(argv)


if __name__ == "__main__":
    sys.exit(main())
