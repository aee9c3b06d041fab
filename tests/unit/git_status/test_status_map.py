"""Tests for porcelain parsing, priority merge, propagation and the repo cache."""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from myls.entries import collect_entries, read_directory
from myls.git_status import (
    STATUS_PLACEHOLDER,
    RepoStatusCache,
    StatusRank,
    StatusRecord,
    attach_status_to_dir,
    attach_status_to_files,
    build_status_map,
    find_repo_root,
    iter_porcelain_records,
    merge_status,
    query_repo_statuses,
)


class PorcelainParsingTests(unittest.TestCase):
    def test_records_are_split_on_nul(self) -> None:
        output = b" M src/main.py\0?? notes.txt\0!! build/\0"
        self.assertEqual(
            iter_porcelain_records(output),
            [(" M", "src/main.py"), ("??", "notes.txt"), ("!!", "build/")],
        )

    def test_malformed_records_are_skipped(self) -> None:
        output = b"XY\0 Mno-separator\0abc\0?? ok.txt\0"
        self.assertEqual(iter_porcelain_records(output), [("??", "ok.txt")])

    def test_rename_source_token_is_skipped(self) -> None:
        output = b"R  new name.txt\0ab cdef\0 M other.txt\0"
        self.assertEqual(
            iter_porcelain_records(output),
            [("R ", "new name.txt"), (" M", "other.txt")],
        )


class PriorityMergeTests(unittest.TestCase):
    def test_rank_order(self) -> None:
        self.assertEqual(StatusRecord.parse("!!").rank, StatusRank.IGNORED)
        self.assertEqual(StatusRecord.parse("??").rank, StatusRank.UNTRACKED)
        for code in (" M", "M ", "A ", " D", "R ", "UU"):
            self.assertEqual(StatusRecord.parse(code).rank, StatusRank.CHANGED)
        self.assertLess(StatusRank.IGNORED, StatusRank.UNTRACKED)
        self.assertLess(StatusRank.UNTRACKED, StatusRank.CHANGED)

    def test_merge_keeps_higher_rank_in_either_order(self) -> None:
        target = Path("/repo/file")
        codes = ["!!", "??", " M"]
        for first in codes:
            for second in codes:
                statuses = {}
                merge_status(statuses, target, StatusRecord.parse(first))
                merge_status(statuses, target, StatusRecord.parse(second))
                expected = max(StatusRecord.parse(first), StatusRecord.parse(second), key=lambda r: r.rank)
                self.assertEqual(statuses[target].rank, expected.rank)

    def test_merge_is_idempotent(self) -> None:
        target = Path("/repo/file")
        record = StatusRecord.parse("??")
        statuses = {}
        merge_status(statuses, target, record)
        merge_status(statuses, target, record)
        self.assertEqual(statuses, {target: record})

    def test_display_replaces_spaces(self) -> None:
        self.assertEqual(StatusRecord.parse(" M").display, "-M")
        self.assertEqual(StatusRecord.parse("A ").display, "A-")
        self.assertEqual(StatusRecord.parse("??").display, "??")


class PropagationTests(unittest.TestCase):
    def test_every_ancestor_up_to_root_has_at_least_the_child_rank(self) -> None:
        root = Path("/work/repo")
        records = [
            ("??", "a/b/c/new.txt"),
            (" M", "a/b/changed.py"),
            ("!!", "a/ignored.log"),
        ]
        statuses = build_status_map(root, records)

        for code, rel in records:
            target = root.joinpath(*rel.split("/"))
            rank = StatusRecord.parse(code).rank
            self.assertGreaterEqual(statuses[target].rank, rank)
            parent = target.parent
            while True:
                self.assertGreaterEqual(statuses[parent].rank, rank)
                if parent == root:
                    break
                parent = parent.parent

        self.assertEqual(statuses[root / "a"].code, " M")
        self.assertEqual(statuses[root / "a" / "b" / "c"].code, "??")
        self.assertEqual(statuses[root].code, " M")
        self.assertNotIn(root.parent, statuses)

    def test_trailing_slash_directories_are_normalized(self) -> None:
        root = Path("/work/repo")
        statuses = build_status_map(root, [("!!", "build/")])
        self.assertEqual(statuses[root / "build"].code, "!!")
        self.assertEqual(statuses[root].code, "!!")


class FindRepoRootTests(unittest.TestCase):
    def test_walks_up_to_marker(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            nested = root / "a" / "b"
            nested.mkdir(parents=True)
            self.assertEqual(find_repo_root(nested), root)
            self.assertEqual(find_repo_root(root), root)

    def test_returns_none_without_marker(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            if find_repo_root(root.parent) is not None:
                self.skipTest("temporary directory lives inside a repository")
            self.assertIsNone(find_repo_root(root))


class QueryRepoStatusesTests(unittest.TestCase):
    def test_no_time_limit_unless_requested(self) -> None:
        completed = mock.Mock(returncode=0, stdout=b"?? new.txt\0")
        with mock.patch("myls.git_status.subprocess.run", return_value=completed) as run:
            statuses = query_repo_statuses(Path("/repo"))
            query_repo_statuses(Path("/repo"), timeout_seconds=3.0)

        self.assertEqual(statuses[Path("/repo/new.txt")].code, "??")
        self.assertIsNone(run.call_args_list[0].kwargs["timeout"])
        self.assertEqual(run.call_args_list[1].kwargs["timeout"], 3.0)

    def test_nonzero_exit_yields_none(self) -> None:
        failed = mock.Mock(returncode=128, stdout=b"")
        with mock.patch("myls.git_status.subprocess.run", return_value=failed):
            self.assertIsNone(query_repo_statuses(Path("/repo")))


class RepoStatusCacheTests(unittest.TestCase):
    def test_query_runs_once_per_root(self) -> None:
        calls: list[Path] = []

        def query(root: Path):
            calls.append(root)
            return {}

        cache = RepoStatusCache(query=query)
        root = Path("/repo")
        self.assertEqual(cache.statuses_for_root(root), {})
        self.assertEqual(cache.statuses_for_root(root), {})
        self.assertEqual(calls, [root])
        self.assertIn(root, cache)

    def test_failed_query_is_cached(self) -> None:
        calls: list[Path] = []

        def query(root: Path):
            calls.append(root)
            return None

        cache = RepoStatusCache(query=query)
        self.assertIsNone(cache.statuses_for_root(Path("/repo")))
        self.assertIsNone(cache.statuses_for_root(Path("/repo")))
        self.assertEqual(len(calls), 1)

    def test_concurrent_misses_coalesce_into_one_query(self) -> None:
        started = threading.Event()
        release = threading.Event()
        calls: list[Path] = []
        result = {Path("/repo/x"): StatusRecord.parse("??")}

        def query(root: Path):
            calls.append(root)
            started.set()
            release.wait(timeout=2.0)
            return result

        cache = RepoStatusCache(query=query)
        seen: list[object] = []
        seen_lock = threading.Lock()

        def worker() -> None:
            value = cache.statuses_for_root(Path("/repo"))
            with seen_lock:
                seen.append(value)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        self.assertTrue(started.wait(timeout=2.0))
        release.set()
        for thread in threads:
            thread.join(timeout=2.0)

        self.assertEqual(len(calls), 1)
        self.assertEqual(len(seen), 4)
        self.assertTrue(all(value is result for value in seen))

    def test_statuses_for_directory_without_repo_skips_query(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            if find_repo_root(root) is not None:
                self.skipTest("temporary directory lives inside a repository")

            def query(_root: Path):
                raise AssertionError("query must not run without a repository")

            cache = RepoStatusCache(query=query)
            self.assertIsNone(cache.statuses_for(root))


class AttachStatusTests(unittest.TestCase):
    def _fake_repo(self, root: Path) -> RepoStatusCache:
        (root / ".git").mkdir()
        (root / "a.txt").write_text("a\n", encoding="utf-8")
        (root / "b.txt").write_text("b\n", encoding="utf-8")
        (root / "sub").mkdir()
        (root / "sub" / "inner.txt").write_text("x\n", encoding="utf-8")
        records = [("??", "b.txt"), (" M", "sub/inner.txt")]
        return RepoStatusCache(query=lambda repo_root: build_status_map(repo_root, records))

    def test_directory_children_get_propagated_status_and_placeholders(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            cache = self._fake_repo(root)
            entries, error = read_directory(root)
            self.assertIsNone(error)
            entries = [entry for entry in entries if entry.name != ".git"]

            attached = {entry.name: entry.git_status for entry in attach_status_to_dir(root, entries, cache)}
            self.assertEqual(attached, {"a.txt": STATUS_PLACEHOLDER, "b.txt": "??", "sub": "-M"})

    def test_flat_file_list_resolves_each_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            cache = self._fake_repo(root)
            files, dirs = collect_entries(
                [str(root / "a.txt"), str(root / "sub" / "inner.txt"), str(root / "sub")],
                list_dirs_as_files=True,
            )
            self.assertEqual(dirs, [])

            attached = [entry.git_status for entry in attach_status_to_files(files, cache)]
            self.assertEqual(attached, [STATUS_PLACEHOLDER, "-M", "-M"])

    def test_no_status_anywhere_means_no_placeholders(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            (root / "clean.txt").write_text("x\n", encoding="utf-8")
            cache = RepoStatusCache(query=lambda repo_root: build_status_map(repo_root, []))
            entries, _error = read_directory(root)
            entries = [entry for entry in entries if entry.name != ".git"]

            self.assertEqual([entry.git_status for entry in attach_status_to_dir(root, entries, cache)], [""])
            self.assertEqual([entry.git_status for entry in attach_status_to_files(entries, cache)], [""])


if __name__ == "__main__":
    unittest.main()
