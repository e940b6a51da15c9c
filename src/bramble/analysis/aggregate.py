"""Repository-wide aggregation over per-branch analyses.

Pure functions over finished analyses. Degraded branches take part with
their empty derived fields.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Optional, Sequence

from .models import (
    ActivityOverview,
    BranchAnalysis,
    BranchKind,
    BranchStatistics,
    CategoryCount,
    CommitActivity,
    ContributorCount,
    RepositorySummary,
)

DEFAULT_TOP_CONTRIBUTORS = 10


def summarize(
    path: str, default_branch: str, branches: Sequence[BranchAnalysis]
) -> RepositorySummary:
    """Predicate counts over the analyzed branches."""
    return RepositorySummary(
        path=path,
        default_branch=default_branch,
        total_branches=len(branches),
        local_branches=sum(1 for b in branches if b.kind is BranchKind.LOCAL),
        remote_branches=sum(1 for b in branches if b.kind is BranchKind.REMOTE),
        stale_branches=sum(1 for b in branches if b.is_stale),
        mergeable_branches=sum(1 for b in branches if b.mergeable),
        conflicted_branches=sum(1 for b in branches if b.conflict_count > 0),
    )


def compute_statistics(
    branches: Sequence[BranchAnalysis], now: Optional[datetime] = None
) -> BranchStatistics:
    """Averages and extremes across branches.

    A branch with unknown last activity counts as age 0. Ties for
    most/least active and most conflicted go to the earlier branch.
    """
    if not branches:
        return BranchStatistics()

    now = now or datetime.now(timezone.utc)
    count = len(branches)

    total_age_seconds = sum(
        max(0.0, (now - b.last_activity).total_seconds())
        for b in branches
        if b.last_activity is not None
    )
    total_commits = sum(b.commit_count for b in branches)
    contributors = {name for b in branches for name in b.contributors}

    by_activity = sorted(branches, key=lambda b: -b.commit_count)
    by_conflicts = sorted(branches, key=lambda b: -b.conflict_count)

    return BranchStatistics(
        average_age_days=total_age_seconds / count / 86400,
        most_active=by_activity[0].name,
        least_active=by_activity[-1].name,
        total_commits=total_commits,
        average_commits_per_branch=total_commits / count,
        total_contributors=len(contributors),
        average_branch_size=sum(b.size for b in branches) / count,
        most_conflicted=by_conflicts[0].name,
    )


def attribute_commits(branches: Sequence[BranchAnalysis]) -> Counter:
    """Credit ``ceil(commit_count / len(contributors))`` to each contributor of each branch.

    An approximation: a commit reachable from several branches is credited
    once per branch, and rounding up can credit more commits than exist.
    """
    credited: Counter = Counter()
    for branch in branches:
        if not branch.contributors:
            continue
        share = math.ceil(branch.commit_count / len(branch.contributors))
        for name in branch.contributors:
            credited[name] += share
    return credited


def build_activity_overview(
    branches: Sequence[BranchAnalysis], top_n: int = DEFAULT_TOP_CONTRIBUTORS
) -> ActivityOverview:
    """Daily activity, contributor leaderboard and branch category counts."""
    daily: Counter = Counter()
    for branch in branches:
        for activity in branch.commit_frequency:
            daily[activity.date] += activity.count

    credited = attribute_commits(branches)
    leaderboard = sorted(credited.items(), key=lambda item: (-item[1], item[0]))[:top_n]

    categories = (
        CategoryCount("Active", sum(1 for b in branches if not b.is_stale)),
        CategoryCount("Stale", sum(1 for b in branches if b.is_stale)),
        CategoryCount("Mergeable", sum(1 for b in branches if b.mergeable)),
        CategoryCount("Conflicted", sum(1 for b in branches if b.conflict_count > 0)),
    )

    return ActivityOverview(
        daily_activity=tuple(CommitActivity(date=day, count=daily[day]) for day in sorted(daily)),
        top_contributors=tuple(ContributorCount(name, commits) for name, commits in leaderboard),
        branch_categories=categories,
    )
