"""Branch analysis pipeline orchestrator.

    collect facts -> resolve default -> filter/prioritize
        -> per-branch analysis (bounded pool) -> aggregate

The default branch is resolved before the fan-out, so the resolver cache is
written once and only read afterwards. Everything runs and terminates inside
one ``analyze()`` call.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from ..exceptions import AnalysisFailed
from ..logging_config import get_logger
from ..vcs.port import RepositoryQueryPort
from .aggregate import build_activity_overview, compute_statistics, summarize
from .analyzer import BranchAnalyzer
from .collector import BulkMetadataCollector
from .default_branch import DefaultBranchResolver
from .filtering import filter_branches
from .models import AnalysisResult
from .scheduler import ProgressObserver, run_branch_analyses

if TYPE_CHECKING:
    from ..config import AnalysisOptions

logger = get_logger(__name__)

# Independent queries per branch that the analyzer may run side by side
_QUERIES_PER_BRANCH = 4


class BranchAnalysisPipeline:
    """Runs a full branch analysis over one repository."""

    def __init__(
        self,
        port: RepositoryQueryPort,
        path: str,
        options: "AnalysisOptions",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.port = port
        self.path = path
        self.options = options
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.resolver = DefaultBranchResolver(
            port,
            candidates=options.default_branch_candidates,
            remote=options.remote_name,
        )

    def analyze(self, progress: Optional[ProgressObserver] = None) -> AnalysisResult:
        """Run every phase and return the aggregated result.

        Args:
            progress: Optional observer, called as ``(completed, total, message)``
                once before the fan-out and after each analyzed branch

        Raises:
            AnalysisFailed: If branches cannot be enumerated or none survive filtering
        """
        started = time.perf_counter()
        options = self.options
        concurrency = options.effective_concurrency
        now = self._clock()

        logger.info("Gathering branch metadata in bulk...")
        facts = BulkMetadataCollector(
            self.port,
            self.resolver,
            include_remote=options.include_remote_branches,
            max_workers=concurrency,
        ).collect()
        default_branch = self.resolver.resolve()

        logger.info("Filtering and prioritizing branches...")
        filtered = filter_branches(
            facts,
            default_branch,
            max_branches=options.max_branches,
            skip_stale_days=options.skip_stale_days,
            now=now,
        )
        if not filtered:
            raise AnalysisFailed("filter", "no branches found or all branches filtered out")

        total = len(filtered)
        logger.info(
            "Analyzing %d branches (depth=%s, concurrency=%d)",
            total,
            options.depth.value,
            concurrency,
        )
        if progress is not None:
            progress(0, total, f"Analyzing {total} branches...")

        with ThreadPoolExecutor(
            max_workers=concurrency * _QUERIES_PER_BRANCH, thread_name_prefix="bramble-query"
        ) as query_executor:
            analyzer = BranchAnalyzer(
                self.port,
                default_branch,
                depth=options.depth,
                stale_days=options.stale_days,
                frequency_window_days=options.frequency_window_days,
                executor=query_executor,
                clock=self._clock,
            )
            analyses = run_branch_analyses(
                filtered,
                analyzer.analyze,
                lambda fact: analyzer.basic(fact, degraded=True),
                max_concurrency=concurrency,
                progress=progress,
            )

        # Completion order -> filter order
        position = {fact.name: index for index, fact in enumerate(filtered)}
        branches = tuple(sorted(analyses, key=lambda a: position[a.name]))

        degraded = sum(1 for b in branches if b.degraded)
        if degraded:
            logger.warning(f"{degraded} of {total} branches fell back to basic metadata")

        logger.info("Calculating statistics...")
        result = AnalysisResult(
            summary=summarize(self.path, default_branch, branches),
            branches=branches,
            statistics=compute_statistics(branches, now=now),
            activity=build_activity_overview(branches, top_n=options.top_contributors),
            options=options,
            duration_seconds=time.perf_counter() - started,
        )
        logger.info(f"Analysis complete in {result.duration_seconds:.1f}s")
        return result
