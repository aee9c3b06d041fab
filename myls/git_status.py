"""Git status overlay for listed entries.

Runs one ``git status`` per repository root, merges records by significance
and propagates each status to every ancestor directory up to the root, so a
directory reflects the most significant change beneath it. Results are kept
for the lifetime of the process in a ``RepoStatusCache`` shared by all scan
workers.
"""

from __future__ import annotations

import enum
import logging
import subprocess
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .entries import Entry

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"
STATUS_PLACEHOLDER = "--"


class StatusRank(enum.IntEnum):
    """Significance of a porcelain code; higher wins on merge."""

    IGNORED = 1
    UNTRACKED = 2
    CHANGED = 3


@dataclass(frozen=True)
class StatusRecord:
    """Raw two-character porcelain code plus its parsed rank."""

    code: str
    rank: StatusRank

    @classmethod
    def parse(cls, code: str) -> StatusRecord:
        if code == "!!":
            return cls(code, StatusRank.IGNORED)
        if code == "??":
            return cls(code, StatusRank.UNTRACKED)
        return cls(code, StatusRank.CHANGED)

    @property
    def display(self) -> str:
        return self.code.replace(" ", "-")


RepoStatusMap = dict[Path, StatusRecord]


def merge_status(statuses: RepoStatusMap, target: Path, record: StatusRecord) -> None:
    """Store ``record`` at ``target`` unless an equal or higher rank is there."""
    current = statuses.get(target)
    if current is None or current.rank < record.rank:
        statuses[target] = record


def find_repo_root(directory: Path) -> Path | None:
    """Return the nearest ancestor (or self) containing a ``.git`` marker."""
    current = directory
    while True:
        if (current / GIT_MARKER).exists():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def iter_porcelain_records(output: bytes) -> list[tuple[str, str]]:
    """Split ``git status --porcelain=v1 -z`` output into ``(code, path)`` pairs.

    Tokens that do not look like ``XY <path>`` are skipped.
    """
    records: list[tuple[str, str]] = []
    tokens = output.split(b"\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if len(token) < 4 or token[2:3] != b" ":
            continue

        code = token[:2].decode("ascii", errors="replace")
        path_text = token[3:].decode("utf-8", errors="surrogateescape")
        records.append((code, path_text))

        # Renames and copies carry the source path as a separate token.
        if "R" in code or "C" in code:
            index += 1

    return records


def build_status_map(root: Path, records: Iterable[tuple[str, str]]) -> RepoStatusMap:
    """Merge porcelain records into an absolute-path keyed, propagated map."""
    statuses: RepoStatusMap = {}
    for code, rel_path in records:
        rel_path = rel_path.rstrip("/")
        if not rel_path:
            continue
        record = StatusRecord.parse(code)
        target = root.joinpath(*rel_path.split("/"))
        merge_status(statuses, target, record)

        parent = target.parent
        while True:
            merge_status(statuses, parent, record)
            if parent == root:
                break
            next_parent = parent.parent
            if next_parent == parent:
                break
            parent = next_parent

    return statuses


def query_repo_statuses(root: Path, timeout_seconds: float | None = None) -> RepoStatusMap | None:
    """Run ``git status`` for ``root``; ``None`` when the query fails.

    No time limit applies unless ``timeout_seconds`` is given.
    """
    try:
        proc = subprocess.run(
            ["git", "-C", str(root), "status", "--porcelain=v1", "-z", "--ignored=matching"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=False,
            timeout=timeout_seconds,
        )
    except Exception as exc:
        logger.debug("git status failed for %s: %s", root, exc)
        return None
    if proc.returncode != 0:
        logger.debug("git status exited with %d for %s", proc.returncode, root)
        return None
    return build_status_map(root, iter_porcelain_records(proc.stdout))


class RepoStatusCache:
    """Process-lifetime map of repository root to its status map.

    The lock guards check and insert only; the git query runs outside it.
    Concurrent misses for the same root wait on the first caller's in-flight
    event instead of querying again.
    """

    def __init__(self, query: Callable[[Path], RepoStatusMap | None] = query_repo_statuses) -> None:
        self._query = query
        self._lock = threading.Lock()
        self._statuses: dict[Path, RepoStatusMap | None] = {}
        self._in_flight: dict[Path, threading.Event] = {}

    def statuses_for_root(self, root: Path) -> RepoStatusMap | None:
        while True:
            with self._lock:
                if root in self._statuses:
                    return self._statuses[root]
                pending = self._in_flight.get(root)
                if pending is None:
                    pending = threading.Event()
                    self._in_flight[root] = pending
                    break
            pending.wait()

        statuses: RepoStatusMap | None = None
        try:
            statuses = self._query(root)
        finally:
            with self._lock:
                self._statuses[root] = statuses
                del self._in_flight[root]
            pending.set()
        return statuses

    def statuses_for(self, directory: Path) -> RepoStatusMap | None:
        """Return the status map of the repository containing ``directory``."""
        root = find_repo_root(directory)
        if root is None:
            return None
        return self.statuses_for_root(root)

    def __contains__(self, root: Path) -> bool:
        with self._lock:
            return root in self._statuses


def _fill_placeholders(entries: list[Entry]) -> list[Entry]:
    if not any(entry.git_status for entry in entries):
        return entries
    return [entry if entry.git_status else entry.with_status(STATUS_PLACEHOLDER) for entry in entries]


def attach_status_to_files(entries: list[Entry], cache: RepoStatusCache) -> list[Entry]:
    """Attach status codes to a flat list that may span several directories.

    Each containing directory is looked up once; a directory entry uses
    itself as lookup directory because it may be a repository root.
    """
    by_directory: dict[Path, RepoStatusMap | None] = {}
    out: list[Entry] = []
    for entry in entries:
        directory = entry.path if entry.info.is_dir else entry.path.parent
        if directory not in by_directory:
            by_directory[directory] = cache.statuses_for(directory)
        statuses = by_directory[directory]
        record = statuses.get(entry.path) if statuses else None
        out.append(entry.with_status(record.display) if record is not None else entry)
    return _fill_placeholders(out)


def attach_status_to_dir(directory: Path, entries: list[Entry], cache: RepoStatusCache) -> list[Entry]:
    """Attach status codes to children of one ``directory``."""
    statuses = cache.statuses_for(directory)
    if not statuses:
        return list(entries)
    out: list[Entry] = []
    for entry in entries:
        record = statuses.get(entry.path)
        out.append(entry.with_status(record.display) if record is not None else entry)
    return _fill_placeholders(out)


__all__ = [
    "GIT_MARKER",
    "STATUS_PLACEHOLDER",
    "StatusRank",
    "StatusRecord",
    "RepoStatusMap",
    "merge_status",
    "find_repo_root",
    "iter_porcelain_records",
    "build_status_map",
    "query_repo_statuses",
    "RepoStatusCache",
    "attach_status_to_files",
    "attach_status_to_dir",
]
