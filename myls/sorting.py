"""Stable multi-pass ordering for listed entries."""

from __future__ import annotations

import enum
import os
from collections.abc import Callable

from .entries import Entry, is_dir_like


class SortKey(enum.Enum):
    NAME = "name"
    EXTENSION = "extension"
    SIZE = "size"
    TIME = "time"
    GIT = "git"


_SORT_KEY_ALIASES = {
    "name": SortKey.NAME,
    "ext": SortKey.EXTENSION,
    "extension": SortKey.EXTENSION,
    "size": SortKey.SIZE,
    "time": SortKey.TIME,
    "mtime": SortKey.TIME,
    "git": SortKey.GIT,
}

SORT_KEY_CHOICES = ("name", "extension", "size", "time", "git")


def parse_sort_key(value: str) -> SortKey | None:
    """Map a user-facing sort word (aliases included) to ``SortKey``."""
    return _SORT_KEY_ALIASES.get(value.strip().lower())


def _extension(entry: Entry) -> str:
    return os.path.splitext(entry.name)[1].casefold()


_SECONDARY_KEYS: dict[SortKey, Callable[[Entry], object]] = {
    SortKey.EXTENSION: _extension,
    SortKey.SIZE: lambda entry: entry.info.size,
    SortKey.TIME: lambda entry: entry.info.mtime_ns,
    SortKey.GIT: lambda entry: entry.git_status.casefold(),
}


def sort_entries(
    entries: list[Entry],
    sort_key: SortKey = SortKey.NAME,
    reverse: bool = False,
    dirs_first: bool = False,
) -> None:
    """Sort ``entries`` in place.

    Name order is always applied first and acts as the tie-break for the
    secondary key. ``list.sort`` is stable, including with ``reverse=True``,
    so every later pass keeps the order of equal elements.
    """
    entries.sort(key=lambda entry: entry.name.casefold(), reverse=reverse)

    secondary = _SECONDARY_KEYS.get(sort_key)
    if secondary is not None:
        entries.sort(key=secondary, reverse=reverse)

    if dirs_first:
        entries.sort(key=lambda entry: not is_dir_like(entry))


__all__ = [
    "SortKey",
    "SORT_KEY_CHOICES",
    "parse_sort_key",
    "sort_entries",
]
