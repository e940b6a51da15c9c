"""Data models for branch analysis.

All records are frozen: a ``BranchFact`` is built once from bulk queries, a
``BranchAnalysis`` once per analyzer invocation, and neither changes after.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from functools import total_ordering
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import AnalysisOptions


@total_ordering
class AnalysisDepth(Enum):
    """Per-branch analysis tier, ordered by cost and completeness.

    - FAST: divergence counts only.
    - NORMAL: divergence, recent contributors, tip-commit size, 30-day
      frequency (bounded).
    - DEEP: exhaustive divergence and contributors, conflict count, full
      branch size, explicit mergeable check.

    Every field populated at a lower tier is also populated at a higher one.
    """

    FAST = "fast"
    NORMAL = "normal"
    DEEP = "deep"

    @property
    def rank(self) -> int:
        return _DEPTH_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AnalysisDepth):
            return NotImplemented
        return self.rank < other.rank


_DEPTH_RANK = {AnalysisDepth.FAST: 0, AnalysisDepth.NORMAL: 1, AnalysisDepth.DEEP: 2}


class BranchKind(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class BranchFact:
    """Branch metadata gathered by the bulk collector."""

    name: str
    tip: str
    is_current: bool = False
    last_commit_at: Optional[datetime] = None  # None = unknown, never stale
    last_commit_author: Optional[str] = None
    commit_count: int = 0
    merged_into_default: bool = False
    kind: BranchKind = BranchKind.LOCAL


@dataclass(frozen=True)
class Divergence:
    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True)
class CommitActivity:
    date: date
    count: int


@dataclass(frozen=True)
class BranchAnalysis:
    """Per-branch result of one analyzer invocation."""

    name: str
    tip: str
    is_current: bool
    last_activity: Optional[datetime]
    last_commit_author: Optional[str]
    commit_count: int
    kind: BranchKind
    is_stale: bool
    divergence: Divergence = field(default_factory=Divergence)
    contributors: tuple[str, ...] = ()
    mergeable: bool = False
    conflict_count: int = 0
    commit_frequency: tuple[CommitActivity, ...] = ()
    size: int = 0  # lines touched
    depth: AnalysisDepth = AnalysisDepth.FAST
    degraded: bool = False


@dataclass(frozen=True)
class RepositorySummary:
    path: str
    default_branch: str
    total_branches: int
    local_branches: int
    remote_branches: int
    stale_branches: int
    mergeable_branches: int
    conflicted_branches: int


@dataclass(frozen=True)
class BranchStatistics:
    """Repository-wide statistics over the analyzed branches."""

    average_age_days: float = 0.0
    most_active: str = ""
    least_active: str = ""
    total_commits: int = 0
    average_commits_per_branch: float = 0.0
    total_contributors: int = 0
    average_branch_size: float = 0.0
    most_conflicted: str = ""


@dataclass(frozen=True)
class ContributorCount:
    name: str
    commits: int


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int


@dataclass(frozen=True)
class ActivityOverview:
    daily_activity: tuple[CommitActivity, ...] = ()
    top_contributors: tuple[ContributorCount, ...] = ()
    branch_categories: tuple[CategoryCount, ...] = ()


@dataclass(frozen=True)
class AnalysisResult:
    """Everything a presentation or export layer needs from one run."""

    summary: RepositorySummary
    branches: tuple[BranchAnalysis, ...]
    statistics: BranchStatistics
    activity: ActivityOverview
    options: Optional["AnalysisOptions"] = None
    duration_seconds: float = 0.0

    def branch(self, name: str) -> Optional[BranchAnalysis]:
        for analysis in self.branches:
            if analysis.name == name:
                return analysis
        return None
