"""Column-major grid layout for the short listing format.

Names are padded with tabs to a common column width expressed in tab stops.
Entries fill each column top to bottom before moving right, so entry ``i``
sits at row ``i % rows`` and column ``i // rows``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .ansi import display_width

TAB_WIDTH = 8


@dataclass(frozen=True)
class ColumnLayout:
    """Grid shape for ``count`` names."""

    count: int
    columns: int
    rows: int
    column_tabs: int
    tab_width: int = TAB_WIDTH

    def cell(self, index: int) -> tuple[int, int]:
        """Return ``(row, column)`` of entry ``index``."""
        return index % self.rows, index // self.rows

    def index(self, row: int, column: int) -> int | None:
        """Return the entry index at ``(row, column)``, ``None`` past the end."""
        idx = column * self.rows + row
        return idx if idx < self.count else None

    def padding(self, width: int) -> int:
        """Return the number of tabs that follow a cell ``width`` columns wide."""
        return max(self.column_tabs - width // self.tab_width, 1)


def layout_columns(
    names: Sequence[str],
    tab_width: int = TAB_WIDTH,
    line_width: int = 80,
    measure: Callable[[str], int] = display_width,
) -> ColumnLayout:
    """Compute the widest grid of ``names`` that fits in ``line_width``.

    The column width is the widest name rounded up past the next tab stop,
    so neighbouring columns are always separated by at least one tab.
    """
    count = len(names)
    if count == 0:
        return ColumnLayout(count=0, columns=0, rows=0, column_tabs=1, tab_width=tab_width)

    widest = max(measure(name) for name in names)
    column_tabs = widest // tab_width + 1
    columns = min(max(line_width // (column_tabs * tab_width), 1), count)
    rows = (count + columns - 1) // columns
    return ColumnLayout(
        count=count,
        columns=columns,
        rows=rows,
        column_tabs=column_tabs,
        tab_width=tab_width,
    )


def format_columns(
    names: Sequence[str],
    tab_width: int = TAB_WIDTH,
    line_width: int = 80,
    measure: Callable[[str], int] = display_width,
) -> list[str]:
    """Render ``names`` as tab-padded grid rows (one name per row if only one column fits)."""
    layout = layout_columns(names, tab_width, line_width, measure)
    if layout.count == 0:
        return []
    if layout.columns == 1:
        return list(names)

    lines: list[str] = []
    for row in range(layout.rows):
        parts: list[str] = []
        for column in range(layout.columns):
            idx = layout.index(row, column)
            if idx is None:
                break
            name = names[idx]
            parts.append(name)
            # No trailing padding after the last populated cell of a row.
            if column == layout.columns - 1 or idx + layout.rows >= layout.count:
                continue
            parts.append("\t" * layout.padding(measure(name)))
        lines.append("".join(parts))
    return lines


__all__ = [
    "TAB_WIDTH",
    "ColumnLayout",
    "layout_columns",
    "format_columns",
]
