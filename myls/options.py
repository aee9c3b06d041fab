"""Resolved runtime options for one ``myls`` invocation."""

from __future__ import annotations

from dataclasses import dataclass

from .config import DEFAULT_TIME_FORMAT_NEW, DEFAULT_TIME_FORMAT_OLD
from .sorting import SortKey


@dataclass(frozen=True)
class ListOptions:
    show_all: bool = False
    list_dirs_as_files: bool = False
    long_format: bool = False
    reverse: bool = False
    one_per_line: bool = False
    dirs_first: bool = False
    git: bool = False
    sort_key: SortKey = SortKey.NAME
    color: bool = False
    time_format_old: str = DEFAULT_TIME_FORMAT_OLD
    time_format_new: str = DEFAULT_TIME_FORMAT_NEW
    line_width: int = 80

    @property
    def wants_git_status(self) -> bool:
        """Status is only shown in long format or used as sort key."""
        return self.git and (self.long_format or self.sort_key is SortKey.GIT)


__all__ = ["ListOptions"]
