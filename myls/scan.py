"""Concurrent per-directory scanning with input-ordered results.

Each directory argument is scanned by its own pool task which writes only to
its pre-allocated slot. Leaving the executor context is the barrier; slots are
then returned in argument order regardless of completion order. The
``RepoStatusCache`` is the only state the tasks share.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .entries import Entry, is_hidden, read_directory, self_and_parent
from .git_status import RepoStatusCache, attach_status_to_dir
from .options import ListOptions
from .sorting import sort_entries

logger = logging.getLogger(__name__)

SCAN_MAX_WORKERS = 32


@dataclass
class DirectoryListing:
    """Scan outcome for one directory argument.

    ``error`` is set when the directory could not be read; ``entries`` is then
    empty. ``child_errors`` holds ``(path, error)`` pairs for children whose
    metadata could not be fetched.
    """

    directory: Entry
    entries: list[Entry] = field(default_factory=list)
    error: OSError | None = None
    child_errors: list[tuple[str, OSError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def scan_directory(directory: Entry, options: ListOptions, cache: RepoStatusCache) -> DirectoryListing:
    """Read, filter, annotate and sort the children of one directory."""
    listing = DirectoryListing(directory=directory)

    def record_child_error(path: str, exc: OSError) -> None:
        listing.child_errors.append((path, exc))

    entries, scan_error = read_directory(directory.path, on_error=record_child_error)
    if scan_error is not None:
        logger.debug("scan failed for %s: %s", directory.path, scan_error)
        listing.error = scan_error
        return listing

    if options.show_all:
        entries = self_and_parent(directory.path, on_error=record_child_error) + entries
    else:
        entries = [entry for entry in entries if not is_hidden(entry)]

    if options.wants_git_status:
        entries = attach_status_to_dir(directory.path, entries, cache)

    sort_entries(entries, options.sort_key, options.reverse, options.dirs_first)
    listing.entries = entries
    return listing


def scan_directories(
    directories: list[Entry],
    options: ListOptions,
    cache: RepoStatusCache,
    max_workers: int | None = None,
) -> list[DirectoryListing]:
    """Scan ``directories`` concurrently; results follow input order."""
    if not directories:
        return []

    slots: list[DirectoryListing | None] = [None] * len(directories)

    def run(index: int, directory: Entry) -> None:
        slots[index] = scan_directory(directory, options, cache)

    workers = max_workers or min(SCAN_MAX_WORKERS, len(directories), (os.cpu_count() or 1) + 4)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="myls-scan") as pool:
        futures = [pool.submit(run, index, directory) for index, directory in enumerate(directories)]

    results: list[DirectoryListing] = []
    for index, (directory, future) in enumerate(zip(directories, futures)):
        exc = future.exception()
        if exc is not None:
            logger.debug("scan task for %s raised: %r", directory.path, exc)
            error = exc if isinstance(exc, OSError) else OSError(str(exc))
            results.append(DirectoryListing(directory=directory, error=error))
            continue
        listing = slots[index]
        results.append(listing if listing is not None else DirectoryListing(directory=directory))
    return results


__all__ = [
    "SCAN_MAX_WORKERS",
    "DirectoryListing",
    "scan_directory",
    "scan_directories",
]
