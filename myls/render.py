"""Text rendering for listed entries.

Three formats share the same entries: a long metadata table whose column
widths are recomputed per batch, one classified name per line, and the
column-major grid from ``myls.layout``. Color is optional and produced with
``pygments.console`` escape codes.
"""

from __future__ import annotations

import math
import os
import stat
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pygments.console import ansiformat, colorize

from .ansi import display_width
from .entries import Entry, EntryInfo, ErrorCallback, count_children, is_dir_like
from .git_status import STATUS_PLACEHOLDER
from .layout import TAB_WIDTH, format_columns
from .options import ListOptions

IS_WINDOWS = sys.platform == "win32"
SIZE_UNITS = ("K", "M", "G", "T", "P")

_TYPE_GLYPHS = {
    stat.S_IFDIR: "/",
    stat.S_IFLNK: "@",
    stat.S_IFIFO: "|",
    stat.S_IFSOCK: "=",
}

_TYPE_COLORS = {
    stat.S_IFDIR: "*blue*",
    stat.S_IFLNK: "cyan",
    stat.S_IFIFO: "yellow",
    stat.S_IFSOCK: "magenta",
}
_EXECUTABLE_COLOR = "green"

_STATUS_COLORS = {
    "??": "green",
    "!!": "brightblack",
    "--": "brightblack",
}
_CHANGED_STATUS_COLOR = "yellow"


def _is_executable(info: EntryInfo) -> bool:
    return stat.S_ISREG(info.mode) and bool(info.mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


def classify(entry: Entry) -> str:
    """Return the type glyph appended to ``entry``'s name, or ``""``."""
    glyph = _TYPE_GLYPHS.get(entry.info.type_bits)
    if glyph is not None:
        return glyph
    if not IS_WINDOWS and _is_executable(entry.info):
        return "*"
    return ""


def _windows_mode(info: EntryInfo) -> str:
    chars = ["-"] * 5
    if info.is_symlink:
        chars[0] = "l"
    elif info.is_dir:
        chars[0] = "d"
    attrs = info.attributes
    if attrs & stat.FILE_ATTRIBUTE_ARCHIVE:
        chars[1] = "a"
    if attrs & stat.FILE_ATTRIBUTE_READONLY:
        chars[2] = "r"
    if attrs & stat.FILE_ATTRIBUTE_HIDDEN:
        chars[3] = "h"
    if attrs & stat.FILE_ATTRIBUTE_SYSTEM:
        chars[4] = "s"
    return "".join(chars)


def render_mode(info: EntryInfo, windows: bool = IS_WINDOWS) -> str:
    """Return an ls-style permission string (PowerShell-style on Windows)."""
    if windows:
        return _windows_mode(info)
    return stat.filemode(info.mode)


def _round_half_up(value: float) -> float:
    return math.floor(value + 0.5)


def human_readable(size: int) -> str:
    """Format ``size`` bytes as ``123B``, ``1.5K``, ``120M`` and so on."""
    if size < 1024:
        return f"{size}B"
    value = float(size)
    for unit in SIZE_UNITS:
        value /= 1024.0
        if value < 99.95:
            return f"{_round_half_up(value * 10) / 10:.1f}{unit}"
        if value < 1024.0 - 0.5:
            return f"{_round_half_up(value):.0f}{unit}"
    return "+999" + SIZE_UNITS[-1]


def format_time(mtime: float, fmt_old: str, fmt_new: str, now: datetime | None = None) -> str:
    """Format a modification time; ``fmt_new`` applies within the current year.

    ``%e`` (space-padded day) is expanded here so it works on every platform.
    """
    stamp = datetime.fromtimestamp(mtime)
    current = now or datetime.now()
    fmt = fmt_new if stamp.year == current.year else fmt_old
    return stamp.strftime(fmt.replace("%e", f"{stamp.day:>2}"))


def tilde_path(path: str, home: str | None = None) -> str:
    """Abbreviate an absolute ``path`` under the home directory with ``~``."""
    home_dir = os.path.expanduser("~") if home is None else home
    if not home_dir or not os.path.isabs(path):
        return path
    if path == home_dir:
        return "~"
    prefix = home_dir.rstrip(os.sep) + os.sep
    if path.startswith(prefix):
        return "~" + os.sep + path[len(prefix):]
    return path


@dataclass(frozen=True)
class Styler:
    """Applies ANSI styling when enabled; identity otherwise."""

    enabled: bool = False

    def name(self, entry: Entry) -> str:
        label = entry.name
        if not self.enabled:
            return label
        color = _TYPE_COLORS.get(entry.info.type_bits)
        if color is None and _is_executable(entry.info):
            color = _EXECUTABLE_COLOR
        return ansiformat(color, label) if color else label

    def status(self, code: str, padded: str) -> str:
        if not self.enabled or not code:
            return padded
        return colorize(_STATUS_COLORS.get(code, _CHANGED_STATUS_COLOR), padded)

    def underline(self, text: str) -> str:
        return ansiformat("_", text) if self.enabled else text


def header_line(styler: Styler, windows: bool = IS_WINDOWS) -> str:
    """Return the underlined column header for the long format."""
    mode_label = "Mode" if windows else "Permissions"
    spacer = "  " if windows else " "
    size, date, name = (styler.underline(label) for label in ("Size", "Date Modified", "Name"))
    return f"{styler.underline(mode_label)}{spacer}{size} {date} {name}"


def classified_name(entry: Entry, styler: Styler) -> str:
    return styler.name(entry) + classify(entry)


@dataclass(frozen=True)
class _LongRow:
    mode: str
    size: str
    time: str
    status: str
    name: str


def _size_label(entry: Entry) -> str:
    if is_dir_like(entry):
        children = count_children(entry.path)
        return "!" if children is None else str(children)
    return human_readable(entry.info.size)


def _long_name(entry: Entry, styler: Styler, on_error: ErrorCallback | None) -> str:
    glyph = classify(entry)
    name = styler.name(entry) + glyph
    if entry.info.is_symlink:
        try:
            target = os.readlink(entry.path)
        except OSError as exc:
            if on_error is not None:
                on_error(str(entry.path), exc)
        else:
            name += f" -> {target}"
    return name


def render_long(
    entries: list[Entry],
    options: ListOptions,
    on_error: ErrorCallback | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Render the long table; widths fit this batch only."""
    styler = Styler(options.color)
    rows = [
        _LongRow(
            mode=render_mode(entry.info),
            size=_size_label(entry),
            time=format_time(entry.info.mtime, options.time_format_old, options.time_format_new, now),
            status=entry.git_status,
            name=_long_name(entry, styler, on_error),
        )
        for entry in entries
    ]
    if not rows:
        return []

    size_width = max(len(row.size) for row in rows)
    time_width = max(display_width(row.time) for row in rows)
    status_width = max(len(row.status) for row in rows)
    if status_width > 0:
        status_width += 1

    lines: list[str] = []
    for row in rows:
        status = row.status or (STATUS_PLACEHOLDER if status_width else "")
        padded_status = styler.status(status, status.rjust(status_width)) if status_width else ""
        time_pad = " " * (time_width - display_width(row.time))
        lines.append(f"{row.mode} {row.size.rjust(size_width)} {row.time}{time_pad}{padded_status} {row.name}")
    return lines


def render_one_per_line(entries: list[Entry], options: ListOptions) -> list[str]:
    styler = Styler(options.color)
    return [classified_name(entry, styler) for entry in entries]


def render_grid(entries: list[Entry], options: ListOptions) -> list[str]:
    styler = Styler(options.color)
    names = [classified_name(entry, styler) for entry in entries]
    return format_columns(names, TAB_WIDTH, options.line_width)


def render_entries(
    entries: list[Entry],
    options: ListOptions,
    on_error: ErrorCallback | None = None,
) -> list[str]:
    """Render ``entries`` in the format selected by ``options``."""
    if not entries:
        return []
    if options.long_format:
        return render_long(entries, options, on_error)
    if options.one_per_line:
        return render_one_per_line(entries, options)
    return render_grid(entries, options)


Writer = Callable[[str], object]


def write_lines(lines: list[str], write: Writer) -> None:
    for line in lines:
        write(line + "\n")


def section_title(name: str) -> str:
    """Return the ``<dir>:`` header line for a directory section."""
    return f"{tilde_path(name)}:"


__all__ = [
    "classify",
    "render_mode",
    "human_readable",
    "format_time",
    "tilde_path",
    "Styler",
    "header_line",
    "classified_name",
    "render_long",
    "render_one_per_line",
    "render_grid",
    "render_entries",
    "write_lines",
    "section_title",
]
