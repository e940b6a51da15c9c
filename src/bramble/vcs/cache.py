"""
Per-run memoization of read-only git queries.

Deep analysis asks the same questions many times (the default branch tip,
merge-bases against it). Results are keyed by query name and arguments and
live only as long as the ``QueryCache`` instance, i.e. one analysis run.
"""

from __future__ import annotations

import threading
from datetime import date
from functools import wraps
from typing import Any, Callable, Optional

from .port import BranchListing, CommitRecord, DiffStat, RefRecord, RepositoryQueryPort

_MISSING = object()


class QueryCache:
    """
    Thread-safe in-memory cache for query results.

    Features:
    - Keys built from query name and positional/keyword arguments
    - Failures are never cached
    - Hit/miss counters for diagnostics
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._entries: dict[tuple, Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: tuple) -> Any:
        """Return cached value or the ``_MISSING`` sentinel."""
        if not self.enabled:
            return _MISSING
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is _MISSING:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def set(self, key: tuple, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict:
        if not self.enabled:
            return {"enabled": False}
        with self._lock:
            return {
                "enabled": True,
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
            }

    def memoize(self, name: str, func: Callable) -> Callable:
        """Wrap ``func`` so repeated calls with equal arguments hit the cache.

        Two threads asking the same uncached question may both run the
        query; the second result simply overwrites the first.
        """

        @wraps(func)
        def wrapper(*args, **kwargs):
            key = (name, args, tuple(sorted(kwargs.items())))
            cached = self.get(key)
            if cached is not _MISSING:
                return cached
            result = func(*args, **kwargs)
            self.set(key, result)
            return result

        return wrapper


class CachingQueryPort:
    """``RepositoryQueryPort`` decorator that memoizes per-commit queries.

    Enumeration queries (branch listings, refs, merged set) are issued once
    per run anyway and pass straight through.
    """

    def __init__(self, port: RepositoryQueryPort, cache: Optional[QueryCache] = None):
        self._port = port
        self.cache = cache or QueryCache()
        self._count_commits = self.cache.memoize("count_commits", port.count_commits)
        self._list_commit_ids = self.cache.memoize("list_commit_ids", port.list_commit_ids)
        self._log = self.cache.memoize("log", port.log)
        self._commit_diff_stat = self.cache.memoize("commit_diff_stat", port.commit_diff_stat)
        self._diff_stat = self.cache.memoize("diff_stat", port.diff_stat)
        self._merge_base = self.cache.memoize("merge_base", port.merge_base)
        self._rev_parse = self.cache.memoize("rev_parse", port.rev_parse)

    # Pass-through enumeration queries

    def list_branches(self, include_remote: bool = True) -> BranchListing:
        return self._port.list_branches(include_remote)

    def list_refs(self, include_remote: bool = True) -> list[RefRecord]:
        return self._port.list_refs(include_remote)

    def merged_branches(self, target: str, include_remote: bool = True) -> set[str]:
        return self._port.merged_branches(target, include_remote)

    def remote_head(self, remote: str = "origin") -> Optional[str]:
        return self._port.remote_head(remote)

    def local_branches(self) -> list[str]:
        return self._port.local_branches()

    def current_branch(self) -> Optional[str]:
        return self._port.current_branch()

    # Memoized per-commit queries

    def count_commits(self, rev: str) -> int:
        return self._count_commits(rev)

    def list_commit_ids(self, rev: str) -> list[str]:
        return list(self._list_commit_ids(rev))

    def log(
        self,
        rev: str,
        no_merges: bool = False,
        max_count: Optional[int] = None,
        since: Optional[date] = None,
    ) -> list[CommitRecord]:
        return list(self._log(rev, no_merges=no_merges, max_count=max_count, since=since))

    def commit_diff_stat(self, rev: str) -> DiffStat:
        return self._commit_diff_stat(rev)

    def diff_stat(self, base: str, head: str, merge_base: bool = False) -> DiffStat:
        return self._diff_stat(base, head, merge_base=merge_base)

    def merge_base(self, first: str, second: str) -> Optional[str]:
        return self._merge_base(first, second)

    def rev_parse(self, rev: str) -> str:
        return self._rev_parse(rev)
