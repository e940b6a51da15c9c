"""Branch filtering and prioritization before per-branch analysis."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from ..logging_config import get_logger
from .models import BranchFact

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _is_protected(fact: BranchFact, default_branch: str) -> bool:
    return fact.name == default_branch or fact.is_current


def drop_stale(
    facts: Sequence[BranchFact],
    default_branch: str,
    skip_stale_days: Optional[int],
    now: Optional[datetime] = None,
) -> list[BranchFact]:
    """Drop branches whose last commit is older than ``now - skip_stale_days``.

    The default and checked-out branches always survive, and so does any
    branch with an unknown commit time.
    """
    if skip_stale_days is None:
        return list(facts)

    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=skip_stale_days)
    kept = [
        fact
        for fact in facts
        if _is_protected(fact, default_branch)
        or fact.last_commit_at is None
        or fact.last_commit_at >= cutoff
    ]

    dropped = len(facts) - len(kept)
    if dropped:
        logger.info(f"Skipped {dropped} branches idle for more than {skip_stale_days} days")
    return kept


def priority_key(fact: BranchFact, default_branch: str) -> tuple:
    """Sort key: default first, current second, then most recent commit first."""
    if fact.name == default_branch:
        rank = 0
    elif fact.is_current:
        rank = 1
    else:
        rank = 2
    last = fact.last_commit_at or _EPOCH
    return (rank, -last.timestamp(), fact.name)


def prioritize(
    facts: Sequence[BranchFact],
    default_branch: str,
    max_branches: Optional[int] = None,
) -> list[BranchFact]:
    """Order branches for analysis and apply the branch cap."""
    ordered = sorted(facts, key=lambda fact: priority_key(fact, default_branch))
    if max_branches is not None and len(ordered) > max_branches:
        logger.info(f"Limiting analysis to {max_branches} of {len(ordered)} branches")
        ordered = ordered[:max_branches]
    return ordered


def filter_branches(
    facts: Sequence[BranchFact],
    default_branch: str,
    max_branches: Optional[int] = None,
    skip_stale_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[BranchFact]:
    """Staleness cut followed by ordering and cap.

    The result never exceeds ``max_branches`` and contains the default and
    checked-out branches whenever they were in ``facts`` (a cap of 1 keeps
    only the default branch).
    """
    survivors = drop_stale(facts, default_branch, skip_stale_days, now=now)
    return prioritize(survivors, default_branch, max_branches)
