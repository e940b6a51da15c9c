"""Query port between the analysis pipeline and the version-control tool.

The pipeline only ever talks to a ``RepositoryQueryPort``. ``GitGateway``
implements it by running ``git``; tests implement it in memory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Protocol


@dataclass(frozen=True)
class BranchListing:
    """Branch names from a single enumeration call."""

    local: tuple[str, ...] = ()
    remote: tuple[str, ...] = ()
    current: Optional[str] = None
    tips: dict[str, str] = field(default_factory=dict)  # name -> abbreviated tip, when listed

    @property
    def names(self) -> tuple[str, ...]:
        return self.local + self.remote


@dataclass(frozen=True)
class RefRecord:
    name: str
    tip: str
    committed_at: Optional[datetime]
    author: Optional[str]
    remote: bool = False


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    author: str
    day: date  # committer date, commit's own timezone


@dataclass(frozen=True)
class DiffStat:
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0

    @property
    def lines_touched(self) -> int:
        return self.insertions + self.deletions


class RepositoryQueryPort(Protocol):
    """Read-only queries the pipeline issues against a repository.

    Every method raises ``CommandFailed`` when the underlying tool fails.
    Implementations never retry and never mutate the repository.
    """

    def list_branches(self, include_remote: bool = True) -> BranchListing: ...

    def list_refs(self, include_remote: bool = True) -> list[RefRecord]: ...

    def count_commits(self, rev: str) -> int: ...

    def list_commit_ids(self, rev: str) -> list[str]: ...

    def merged_branches(self, target: str, include_remote: bool = True) -> set[str]: ...

    def remote_head(self, remote: str = "origin") -> Optional[str]: ...

    def local_branches(self) -> list[str]: ...

    def current_branch(self) -> Optional[str]: ...

    def log(
        self,
        rev: str,
        no_merges: bool = False,
        max_count: Optional[int] = None,
        since: Optional[date] = None,
    ) -> list[CommitRecord]: ...

    def commit_diff_stat(self, rev: str) -> DiffStat: ...

    def diff_stat(self, base: str, head: str, merge_base: bool = False) -> DiffStat: ...

    def merge_base(self, first: str, second: str) -> Optional[str]: ...

    def rev_parse(self, rev: str) -> str: ...
