"""Shared test fixtures for Bramble tests."""

import os
import re
import shutil
import subprocess
import threading
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Optional

import pytest

from bramble.exceptions import CommandFailed
from bramble.vcs.port import BranchListing, CommitRecord, DiffStat, RefRecord

NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)

_UNSET = object()


class FakeRepository:
    """In-memory ``RepositoryQueryPort`` over a tiny commit graph.

    Each branch is a newest-first list of commits; branches share history
    by sharing commit ids. Queries naming a branch in ``failing_branches``
    and any method listed in ``failing`` raise ``CommandFailed``.
    """

    def __init__(self):
        self.local: list[str] = []
        self.remote: list[str] = []
        self.current: Optional[str] = None
        self.remote_head_target: Optional[str] = None
        self.history: dict[str, list[CommitRecord]] = {}
        self.committed_at: dict[str, Optional[datetime]] = {}
        self.authors: dict[str, Optional[str]] = {}
        self.tip_stats: dict[str, DiffStat] = {}
        self.missing_refs: set[str] = set()
        self.failing: set[str] = set()
        self.failing_branches: set[str] = set()
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def add_branch(
        self,
        name: str,
        commits: list[CommitRecord],
        remote: bool = False,
        committed_at=_UNSET,
        author=_UNSET,
        current: bool = False,
    ) -> "FakeRepository":
        (self.remote if remote else self.local).append(name)
        self.history[name] = list(commits)
        if committed_at is _UNSET:
            committed_at = datetime.combine(commits[0].day, time(12), tzinfo=timezone.utc)
        self.committed_at[name] = committed_at
        self.authors[name] = commits[0].author if author is _UNSET else author
        if current:
            self.current = name
        return self

    def calls_to(self, method: str) -> list[tuple]:
        with self._lock:
            return [call for call in self.calls if call[0] == method]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, method: str, *args) -> None:
        with self._lock:
            self.calls.append((method, *args))
        if method in self.failing:
            raise CommandFailed((method, *map(str, args)), "simulated failure", returncode=128)
        for arg in args:
            if not isinstance(arg, str):
                continue
            if set(re.split(r"\.{2,3}", arg)) & self.failing_branches:
                raise CommandFailed((method, arg), f"simulated failure for {arg}", returncode=128)

    def _commits(self, rev: str) -> list[CommitRecord]:
        if rev in self.history:
            return self.history[rev]
        for commits in self.history.values():
            if commits and commits[0].sha == rev:
                return commits
        raise CommandFailed(("rev-parse", rev), f"unknown revision {rev}", returncode=128)

    def _range(self, rev: str) -> list[CommitRecord]:
        if ".." in rev:
            base, head = rev.split("..", 1)
            excluded = {c.sha for c in self._commits(base)}
            return [c for c in self._commits(head) if c.sha not in excluded]
        return list(self._commits(rev))

    # ------------------------------------------------------------------
    # RepositoryQueryPort
    # ------------------------------------------------------------------

    def list_branches(self, include_remote: bool = True) -> BranchListing:
        self._record("list_branches")
        names = self.local + (self.remote if include_remote else [])
        return BranchListing(
            local=tuple(self.local),
            remote=tuple(self.remote) if include_remote else (),
            current=self.current,
            tips={name: self.history[name][0].sha for name in names},
        )

    def list_refs(self, include_remote: bool = True) -> list[RefRecord]:
        self._record("list_refs")
        names = self.local + (self.remote if include_remote else [])
        return [
            RefRecord(
                name=name,
                tip=self.history[name][0].sha,
                committed_at=self.committed_at[name],
                author=self.authors[name],
                remote=name in self.remote,
            )
            for name in names
            if name not in self.missing_refs
        ]

    def count_commits(self, rev: str) -> int:
        self._record("count_commits", rev)
        return len(self._range(rev))

    def list_commit_ids(self, rev: str) -> list[str]:
        self._record("list_commit_ids", rev)
        return [c.sha for c in self._range(rev)]

    def merged_branches(self, target: str, include_remote: bool = True) -> set[str]:
        self._record("merged_branches", target)
        reachable = {c.sha for c in self._commits(target)}
        names = self.local + (self.remote if include_remote else [])
        return {
            name
            for name in names
            if name != target and {c.sha for c in self.history[name]} <= reachable
        }

    def remote_head(self, remote: str = "origin") -> Optional[str]:
        self._record("remote_head")
        if self.remote_head_target is None:
            raise CommandFailed(("symbolic-ref", remote), "not a symbolic ref", returncode=1)
        return self.remote_head_target

    def local_branches(self) -> list[str]:
        self._record("local_branches")
        return list(self.local)

    def current_branch(self) -> Optional[str]:
        self._record("current_branch")
        return self.current

    def log(
        self,
        rev: str,
        no_merges: bool = False,
        max_count: Optional[int] = None,
        since: Optional[date] = None,
    ) -> list[CommitRecord]:
        self._record("log", rev)
        commits = self._range(rev)
        if since is not None:
            commits = [c for c in commits if c.day >= since]
        if max_count is not None:
            commits = commits[:max_count]
        return commits

    def commit_diff_stat(self, rev: str) -> DiffStat:
        self._record("commit_diff_stat", rev)
        sha = self._commits(rev)[0].sha
        return self.tip_stats.get(sha, DiffStat(files_changed=1, insertions=3, deletions=1))

    def diff_stat(self, base: str, head: str, merge_base: bool = False) -> DiffStat:
        self._record("diff_stat", base, head)
        ahead = self._range(f"{base}..{head}")
        if merge_base:
            return DiffStat(files_changed=len(ahead), insertions=10 * len(ahead), deletions=0)
        behind = self._range(f"{head}..{base}")
        return DiffStat(files_changed=len(ahead) + len(behind), insertions=len(ahead))

    def merge_base(self, first: str, second: str) -> Optional[str]:
        self._record("merge_base", first, second)
        reachable = {c.sha for c in self._commits(second)}
        for commit in self._commits(first):
            if commit.sha in reachable:
                return commit.sha
        return None

    def rev_parse(self, rev: str) -> str:
        self._record("rev_parse", rev)
        return self._commits(rev)[0].sha


@pytest.fixture
def now():
    """Fixed analysis time."""
    return NOW


@pytest.fixture
def clock():
    """Clock returning the fixed analysis time."""
    return lambda: NOW


@pytest.fixture
def fake_repo():
    """Empty in-memory repository."""
    return FakeRepository()


@pytest.fixture
def branch_repo():
    """Three branches: main (current), feature/x (active) and old (90 days idle).

        main:      m3 (Oct 14, alice)  m2 (Oct 10, bob)  m1 (Jul 1, alice)
        feature/x: f2 (Oct 12, carol)  f1 (Oct 11, carol)  m2  m1
        old:       o1 (Jul 17, dave)  m1
    """
    m1 = CommitRecord("m1", "alice", date(2026, 7, 1))
    m2 = CommitRecord("m2", "bob", date(2026, 10, 10))
    m3 = CommitRecord("m3", "alice", date(2026, 10, 14))
    f1 = CommitRecord("f1", "carol", date(2026, 10, 11))
    f2 = CommitRecord("f2", "carol", date(2026, 10, 12))
    o1 = CommitRecord("o1", "dave", date(2026, 7, 17))

    repo = FakeRepository()
    repo.add_branch("main", [m3, m2, m1], current=True)
    repo.add_branch("feature/x", [f2, f1, m2, m1])
    repo.add_branch("old", [o1, m1])
    return repo


def _git(repo: Path, *args: str, env: Optional[dict] = None) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True,
        text=True,
        check=True,
        env={**os.environ, **(env or {})},
    )
    return result.stdout.strip()


def _commit(repo: Path, filename: str, content: str, author: str, when: Optional[str] = None):
    (repo / filename).write_text(content)
    _git(repo, "add", filename)
    env = {
        "GIT_AUTHOR_NAME": author,
        "GIT_AUTHOR_EMAIL": f"{author.lower()}@example.com",
        "GIT_COMMITTER_NAME": author,
        "GIT_COMMITTER_EMAIL": f"{author.lower()}@example.com",
    }
    if when is not None:
        env["GIT_AUTHOR_DATE"] = when
        env["GIT_COMMITTER_DATE"] = when
    _git(repo, "commit", "--quiet", "--no-gpg-sign", "-m", f"add {filename}", env=env)


@pytest.fixture
def git_repo(tmp_path):
    """Real repository with branches main, feature/x, old and done.

        main:      c1 <- c3
        feature/x: c1 <- c2 (two new lines by Carol)
        old:       c1 <- c4 (committed 2020-01-01)
        done:      c1 (fully merged into main)
    """
    if shutil.which("git") is None:
        pytest.skip("git not found")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test")

    _commit(repo, "a.txt", "one\n", "Alice")
    first = _git(repo, "rev-parse", "HEAD")
    _git(repo, "branch", "done", first)

    _git(repo, "checkout", "--quiet", "-b", "feature/x")
    _commit(repo, "b.txt", "two\nthree\n", "Carol")

    _git(repo, "checkout", "--quiet", "-b", "old", first)
    _commit(repo, "d.txt", "stale\n", "Dave", when="2020-01-01T12:00:00+00:00")

    _git(repo, "checkout", "--quiet", "main")
    _commit(repo, "c.txt", "four\n", "Bob")
    return repo
