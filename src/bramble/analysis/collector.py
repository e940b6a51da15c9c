"""Bulk branch metadata collection.

Builds the full ``BranchFact`` table with a handful of wide queries instead
of one query per branch per fact:

    (a) one branch enumeration
    (b) one ref query (tip, commit time, author for every ref)
    (c) commit counts, in batches of 50 run concurrently
    (d) one merged-into-default query

(a) and (b) are required; (c) and (d) degrade to zero/empty per branch.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from ..exceptions import AnalysisFailed, CommandFailed
from ..logging_config import get_logger
from ..vcs.port import BranchListing, RefRecord, RepositoryQueryPort
from .default_branch import DefaultBranchResolver
from .models import BranchFact, BranchKind

logger = get_logger(__name__)

# Keeps each batch well under command-line and process-table limits
COUNT_BATCH_SIZE = 50


class BulkMetadataCollector:
    """Collects ``BranchFact`` records for every branch in the repository."""

    def __init__(
        self,
        port: RepositoryQueryPort,
        resolver: DefaultBranchResolver,
        include_remote: bool = True,
        max_workers: int = 4,
        batch_size: int = COUNT_BATCH_SIZE,
    ):
        self._port = port
        self._resolver = resolver
        self._include_remote = include_remote
        self._max_workers = max(1, max_workers)
        self._batch_size = max(1, batch_size)

    def collect(self) -> list[BranchFact]:
        """Return one fact per enumerated branch.

        Raises:
            AnalysisFailed: If branches or refs cannot be enumerated at all
        """
        try:
            listing = self._port.list_branches(self._include_remote)
        except CommandFailed as e:
            raise AnalysisFailed("collect", f"cannot enumerate branches: {e.reason}")

        try:
            refs = self._port.list_refs(self._include_remote)
        except CommandFailed as e:
            raise AnalysisFailed("collect", f"cannot read branch refs: {e.reason}")

        names = _unique(listing.names)
        logger.info(
            "Found %d branches (%d local, %d remote)",
            len(names),
            len(listing.local),
            len(listing.remote),
        )

        counts = self._count_commits(names)
        default_branch = self._resolver.resolve()
        merged = self._merged_set(default_branch)

        return self._build_facts(names, listing, refs, counts, merged)

    def _count_commits(self, names: Sequence[str]) -> dict[str, int]:
        counts: dict[str, int] = {}
        if not names:
            return counts

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            for start in range(0, len(names), self._batch_size):
                batch = names[start:start + self._batch_size]
                futures = {executor.submit(self._port.count_commits, name): name for name in batch}
                for future in as_completed(futures):
                    name = futures[future]
                    try:
                        counts[name] = future.result()
                    except (CommandFailed, ValueError) as e:
                        logger.debug(f"Commit count unavailable for {name}: {e}")
                        counts[name] = 0

        return counts

    def _merged_set(self, default_branch: str) -> set[str]:
        try:
            return self._port.merged_branches(default_branch, self._include_remote)
        except CommandFailed as e:
            logger.warning(
                "Cannot determine branches merged into %s: %s", default_branch, e.reason
            )
            return set()

    def _build_facts(
        self,
        names: Sequence[str],
        listing: BranchListing,
        refs: Sequence[RefRecord],
        counts: dict[str, int],
        merged: set[str],
    ) -> list[BranchFact]:
        remote_names = set(listing.remote)
        refs_by_key = {(ref.name, ref.remote): ref for ref in refs}

        facts: list[BranchFact] = []
        for name in names:
            is_remote = name in remote_names
            ref = refs_by_key.get((name, is_remote))
            if ref is None:
                # Some git versions omit the checked-out branch from ref output
                logger.debug(f"No ref data for {name}, keeping partial metadata")

            facts.append(
                BranchFact(
                    name=name,
                    tip=ref.tip if ref is not None else listing.tips.get(name, ""),
                    is_current=not is_remote and name == listing.current,
                    last_commit_at=ref.committed_at if ref is not None else None,
                    last_commit_author=ref.author if ref is not None else None,
                    commit_count=counts.get(name, 0),
                    merged_into_default=name in merged,
                    kind=BranchKind.REMOTE if is_remote else BranchKind.LOCAL,
                )
            )

        return facts


def _unique(names: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(names))
