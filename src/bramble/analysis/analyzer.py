"""Depth-tiered per-branch analysis.

One ``BranchAnalyzer`` is built per run (default branch and depth are fixed
for the run) and called once per branch, possibly from several threads at
once. It holds no per-branch state.

Tiers:
    FAST    divergence from two ``rev-list --count`` queries
    NORMAL  FAST + contributors of the last 50 non-merge commits, lines touched
            by the tip commit, daily commit counts over the frequency window
            (at most 100 commits)
    DEEP    divergence from full ``rev-list`` listings, contributors over the
            whole history, conflict-file count, unbounded frequency, size of the
            full branch diff since its merge-base, explicit mergeable check

Any query failure degrades the branch to ``basic_analysis`` of its fact.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import Executor
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from ..exceptions import BranchAnalysisError, CommandFailed
from ..logging_config import get_logger
from ..vcs.port import CommitRecord, RepositoryQueryPort
from .models import AnalysisDepth, BranchAnalysis, BranchFact, CommitActivity, Divergence

logger = get_logger(__name__)

# Cost caps for the NORMAL tier
CONTRIBUTOR_SAMPLE = 50
FREQUENCY_COMMIT_CAP = 100

DEFAULT_STALE_DAYS = 30
DEFAULT_FREQUENCY_WINDOW_DAYS = 30

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_stale(last_activity: Optional[datetime], now: datetime, stale_days: int) -> bool:
    """Unknown activity is never stale."""
    if last_activity is None:
        return False
    return last_activity < now - timedelta(days=stale_days)


def basic_analysis(
    fact: BranchFact,
    default_branch: str,
    stale_days: int = DEFAULT_STALE_DAYS,
    now: Optional[datetime] = None,
    degraded: bool = False,
) -> BranchAnalysis:
    """BranchAnalysis built from the fact alone, derived fields empty.

    This is both the starting point of every tier and the degraded result
    when a tier fails.
    """
    is_default = fact.name == default_branch
    return BranchAnalysis(
        name=fact.name,
        tip=fact.tip,
        is_current=fact.is_current,
        last_activity=fact.last_commit_at,
        last_commit_author=fact.last_commit_author,
        commit_count=fact.commit_count,
        kind=fact.kind,
        is_stale=is_stale(fact.last_commit_at, now or _utcnow(), stale_days),
        divergence=Divergence(),
        mergeable=is_default or fact.merged_into_default,
        degraded=degraded,
    )


def _distinct_authors(commits: Sequence[CommitRecord]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(c.author for c in commits if c.author))


def _daily_counts(commits: Sequence[CommitRecord], since: date) -> tuple[CommitActivity, ...]:
    counts = Counter(c.day for c in commits if c.day >= since)
    return tuple(CommitActivity(date=day, count=counts[day]) for day in sorted(counts))


def _fold_divergence(fields: dict[str, Any]) -> dict[str, Any]:
    """Replace separate ahead/behind counts with one Divergence."""
    if "ahead" in fields or "behind" in fields:
        fields["divergence"] = Divergence(
            ahead=fields.pop("ahead", 0), behind=fields.pop("behind", 0)
        )
    fields.setdefault("divergence", Divergence())
    return fields


class BranchAnalyzer:
    """Computes a ``BranchAnalysis`` for one branch at a fixed depth."""

    def __init__(
        self,
        port: RepositoryQueryPort,
        default_branch: str,
        depth: AnalysisDepth = AnalysisDepth.NORMAL,
        stale_days: int = DEFAULT_STALE_DAYS,
        frequency_window_days: int = DEFAULT_FREQUENCY_WINDOW_DAYS,
        executor: Optional[Executor] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            port: Query port for the repository
            default_branch: Resolved default branch name
            depth: Analysis tier for every branch of the run
            stale_days: Freshness window for ``is_stale``
            frequency_window_days: Lookback window for commit frequency
            executor: Optional pool for running a branch's independent queries
                concurrently. Must not be the pool that runs ``analyze`` itself.
            clock: Returns the current time (timezone-aware)
        """
        self._port = port
        self.default_branch = default_branch
        self.depth = depth
        self.stale_days = stale_days
        self.frequency_window_days = frequency_window_days
        self._executor = executor
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze(self, fact: BranchFact) -> BranchAnalysis:
        """Analyze ``fact``, degrading to its basic form on failure."""
        try:
            return self.run(fact)
        except BranchAnalysisError as e:
            logger.warning("Degraded analysis for %s: %s", fact.name, e.reason)
            return self.basic(fact, degraded=True)

    def basic(self, fact: BranchFact, degraded: bool = False) -> BranchAnalysis:
        return basic_analysis(
            fact, self.default_branch, self.stale_days, now=self._clock(), degraded=degraded
        )

    def run(self, fact: BranchFact) -> BranchAnalysis:
        """Analyze ``fact`` at the configured depth.

        Raises:
            BranchAnalysisError: If any query for this branch fails
        """
        try:
            if self.depth is AnalysisDepth.FAST:
                fields = self._fast(fact)
            elif self.depth is AnalysisDepth.NORMAL:
                fields = self._normal(fact)
            else:
                fields = self._deep(fact)
        except (CommandFailed, ValueError) as e:
            raise BranchAnalysisError(fact.name, str(e)) from e

        return replace(self.basic(fact), depth=self.depth, **fields)

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _is_default(self, fact: BranchFact) -> bool:
        return fact.name == self.default_branch

    def _frequency_since(self) -> date:
        return (self._clock() - timedelta(days=self.frequency_window_days)).date()

    def _fast(self, fact: BranchFact) -> dict[str, Any]:
        if self._is_default(fact):
            return {"divergence": Divergence()}
        return _fold_divergence(self._gather(self._divergence_calls(fact.name)))

    def _normal(self, fact: BranchFact) -> dict[str, Any]:
        since = self._frequency_since()
        calls: dict[str, Callable[[], Any]] = {
            "contributors": lambda: self._recent_contributors(fact.name),
            "size": lambda: self._tip_size(fact),
            "commit_frequency": lambda: self._frequency(fact.name, since, FREQUENCY_COMMIT_CAP),
        }
        if not self._is_default(fact):
            calls.update(self._divergence_calls(fact.name))

        return _fold_divergence(self._gather(calls))

    def _deep(self, fact: BranchFact) -> dict[str, Any]:
        since = self._frequency_since()
        calls: dict[str, Callable[[], Any]] = {
            "contributors": lambda: self._all_contributors(fact.name),
            "commit_frequency": lambda: self._frequency(fact.name, since, None),
        }
        if self._is_default(fact):
            calls["size"] = lambda: self._tip_size(fact)
        else:
            calls["divergence"] = lambda: self._list_divergence(fact.name)
            calls["conflict_count"] = lambda: self._conflict_count(fact.name)
            calls["size"] = lambda: self._branch_size(fact)
            calls["mergeable"] = lambda: self._can_fast_forward(fact.name)

        fields = self._gather(calls)
        if self._is_default(fact):
            fields.update(divergence=Divergence(), mergeable=True, conflict_count=0)
        return fields

    def _gather(self, calls: dict[str, Callable[[], Any]]) -> dict[str, Any]:
        """Run independent queries, concurrently when an executor is available."""
        if self._executor is None or len(calls) < 2:
            return {key: call() for key, call in calls.items()}
        futures = {key: self._executor.submit(call) for key, call in calls.items()}
        return {key: future.result() for key, future in futures.items()}

    # ------------------------------------------------------------------
    # Individual metrics
    # ------------------------------------------------------------------

    def _divergence_calls(self, branch: str) -> dict[str, Callable[[], Any]]:
        return {
            "ahead": lambda: self._port.count_commits(f"{self.default_branch}..{branch}"),
            "behind": lambda: self._port.count_commits(f"{branch}..{self.default_branch}"),
        }

    def _list_divergence(self, branch: str) -> Divergence:
        ahead = self._port.list_commit_ids(f"{self.default_branch}..{branch}")
        behind = self._port.list_commit_ids(f"{branch}..{self.default_branch}")
        return Divergence(ahead=len(ahead), behind=len(behind))

    def _recent_contributors(self, branch: str) -> tuple[str, ...]:
        commits = self._port.log(branch, no_merges=True, max_count=CONTRIBUTOR_SAMPLE)
        return _distinct_authors(commits)

    def _all_contributors(self, branch: str) -> tuple[str, ...]:
        return _distinct_authors(self._port.log(branch))

    def _frequency(
        self, branch: str, since: date, max_count: Optional[int]
    ) -> tuple[CommitActivity, ...]:
        commits = self._port.log(branch, max_count=max_count, since=since)
        return _daily_counts(commits, since)

    def _tip_size(self, fact: BranchFact) -> int:
        return self._port.commit_diff_stat(fact.tip or fact.name).lines_touched

    def _branch_size(self, fact: BranchFact) -> int:
        """Lines touched since the merge-base, or by the tip commit when nothing is.

        A branch already contained in the default branch has an empty
        merge-base diff; its tip commit still carries a size.
        """
        stat = self._port.diff_stat(self.default_branch, fact.name, merge_base=True)
        if stat.lines_touched:
            return stat.lines_touched
        return self._tip_size(fact)

    def _conflict_count(self, branch: str) -> int:
        return self._port.diff_stat(self.default_branch, branch).files_changed

    def _can_fast_forward(self, branch: str) -> bool:
        """True when the merge-base equals either tip."""
        base = self._port.merge_base(branch, self.default_branch)
        if base is None:
            return False
        return base in (self._port.rev_parse(branch), self._port.rev_parse(self.default_branch))
