"""Bounded-concurrency execution of per-branch analysis.

All branches go into one shared work queue served by a fixed pool of
``max_concurrency`` threads; a thread that finishes a branch immediately
takes the next one, so a single slow branch never holds back the rest.
Results are folded on the calling thread: a worker exception becomes the
branch's fallback result instead of escaping the pool.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Protocol, Sequence

from ..logging_config import get_logger
from .models import BranchAnalysis, BranchFact

logger = get_logger(__name__)


class ProgressObserver(Protocol):
    def __call__(self, completed: int, total: int, message: str) -> None: ...


def run_branch_analyses(
    facts: Sequence[BranchFact],
    analyze: Callable[[BranchFact], BranchAnalysis],
    fallback: Callable[[BranchFact], BranchAnalysis],
    max_concurrency: int = 1,
    progress: Optional[ProgressObserver] = None,
) -> list[BranchAnalysis]:
    """Analyze every fact with at most ``max_concurrency`` in flight.

    Args:
        facts: Branches to analyze (names unique)
        analyze: Per-branch analysis, may raise
        fallback: Builds the degraded result for a branch whose ``analyze`` raised
        max_concurrency: Worker pool size (at least 1)
        progress: Called as ``(completed, total, message)`` after each branch,
            always from the calling thread, with ``completed`` strictly increasing

    Returns:
        Exactly one BranchAnalysis per fact, in completion order.
    """
    total = len(facts)
    if total == 0:
        return []

    workers = max(1, min(max_concurrency, total))
    results: list[BranchAnalysis] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bramble-branch") as executor:
        futures: dict[Future, BranchFact] = {executor.submit(analyze, fact): fact for fact in facts}

        for future in as_completed(futures):
            fact = futures[future]
            try:
                analysis = future.result()
            except Exception as e:
                logger.warning(f"Analysis of {fact.name} failed unexpectedly: {e}")
                analysis = fallback(fact)
            results.append(analysis)

            if progress is not None:
                completed = len(results)
                progress(completed, total, f"Analyzed: {fact.name} ({completed}/{total})")

    return results
