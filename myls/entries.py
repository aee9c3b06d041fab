"""Filesystem entries and the collectors that produce them.

Entries are built from ``lstat`` metadata so symlinks describe themselves.
Fallible reads return ``(value, error)`` pairs or report through an
``on_error`` callback; callers decide how to surface the fault.
"""

from __future__ import annotations

import glob
import os
import stat
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from pathlib import Path

ErrorCallback = Callable[[str, OSError], None]


@dataclass(frozen=True)
class EntryInfo:
    """Subset of ``os.stat_result`` the listing needs."""

    mode: int
    size: int
    mtime_ns: int
    attributes: int = 0

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)

    @property
    def type_bits(self) -> int:
        return stat.S_IFMT(self.mode)

    @property
    def mtime(self) -> float:
        return self.mtime_ns / 1_000_000_000


@dataclass(frozen=True)
class Entry:
    """One listed filesystem object.

    ``name`` is what gets displayed (a user-supplied argument or a directory
    child name). ``path`` is always absolute and normalized, and is the key
    used for git-status lookups.
    """

    name: str
    path: Path
    info: EntryInfo
    git_status: str = ""

    def with_status(self, git_status: str) -> Entry:
        return replace(self, git_status=git_status)


def info_from_stat(st: os.stat_result) -> EntryInfo:
    return EntryInfo(
        mode=st.st_mode,
        size=int(st.st_size),
        mtime_ns=int(st.st_mtime_ns),
        attributes=int(getattr(st, "st_file_attributes", 0)),
    )


def absolute_path(path: str | os.PathLike[str]) -> Path:
    """Return ``path`` as an absolute path with ``.``/``..`` segments folded."""
    return Path(os.path.abspath(path))


def lstat_entry(name: str, path: str | os.PathLike[str]) -> tuple[Entry | None, OSError | None]:
    """Build an entry for ``path`` without following symlinks."""
    try:
        st = os.lstat(path)
    except OSError as exc:
        return None, exc
    return Entry(name=name, path=absolute_path(path), info=info_from_stat(st)), None


def is_dir_like(entry: Entry) -> bool:
    """Return whether ``entry`` is a directory or a symlink to one."""
    if entry.info.is_dir:
        return True
    if entry.info.is_symlink:
        try:
            return stat.S_ISDIR(os.stat(entry.path).st_mode)
        except OSError:
            return False
    return False


def is_hidden(entry: Entry) -> bool:
    if entry.name.startswith("."):
        return True
    hidden_flag = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0)
    return bool(hidden_flag and entry.info.attributes & hidden_flag)


def read_directory(
    directory: Path,
    on_error: ErrorCallback | None = None,
) -> tuple[list[Entry], OSError | None]:
    """Read immediate children of ``directory`` in scan order.

    Returns ``(entries, scan_error)``. ``scan_error`` is set when the
    directory itself cannot be opened or read. Children whose metadata cannot
    be fetched are reported through ``on_error`` and skipped.
    """
    entries: list[Entry] = []
    try:
        with os.scandir(directory) as children:
            for child in children:
                try:
                    st = child.stat(follow_symlinks=False)
                except OSError as exc:
                    if on_error is not None:
                        on_error(child.path, exc)
                    continue
                entries.append(
                    Entry(
                        name=child.name,
                        path=absolute_path(child.path),
                        info=info_from_stat(st),
                    )
                )
    except OSError as exc:
        return [], exc
    return entries, None


def self_and_parent(directory: Path, on_error: ErrorCallback | None = None) -> list[Entry]:
    """Return ``.`` and ``..`` pseudo-entries for ``directory``."""
    out: list[Entry] = []
    for name in (".", ".."):
        entry, error = lstat_entry(name, os.path.join(directory, name))
        if error is not None:
            if on_error is not None:
                on_error(os.path.join(directory, name), error)
            continue
        if entry is not None:
            out.append(entry)
    return out


def count_children(directory: Path) -> int | None:
    """Return the number of names in ``directory`` or ``None`` when unreadable."""
    try:
        return len(os.listdir(directory))
    except OSError:
        return None


def expand_pattern(pattern: str) -> list[str]:
    """Expand a glob pattern; fall back to the literal text on no match.

    Wildcards match dotfiles too.
    """
    matches = sorted(glob.glob(pattern, include_hidden=True))
    return matches if matches else [pattern]


def collect_entries(
    patterns: Iterable[str],
    list_dirs_as_files: bool = False,
    on_error: ErrorCallback | None = None,
) -> tuple[list[Entry], list[Entry]]:
    """Split command-line patterns into ``(files, dirs)``.

    Directories are listed by content unless ``list_dirs_as_files`` is set.
    Unreadable paths are reported and skipped. Order follows argument order,
    then glob match order.
    """
    args = list(patterns) or ["."]
    files: list[Entry] = []
    dirs: list[Entry] = []
    for pattern in args:
        for path in expand_pattern(pattern):
            entry, error = lstat_entry(path, path)
            if error is not None:
                if on_error is not None:
                    on_error(path, error)
                continue
            if entry is None:
                continue
            if not list_dirs_as_files and entry.info.is_dir:
                dirs.append(entry)
            else:
                files.append(entry)
    return files, dirs


__all__ = [
    "ErrorCallback",
    "EntryInfo",
    "Entry",
    "info_from_stat",
    "absolute_path",
    "lstat_entry",
    "is_dir_like",
    "is_hidden",
    "read_directory",
    "self_and_parent",
    "count_children",
    "expand_pattern",
    "collect_entries",
]
