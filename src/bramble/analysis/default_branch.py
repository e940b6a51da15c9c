"""Default branch resolution through an ordered fallback chain."""

from __future__ import annotations

from typing import Optional, Sequence

from ..exceptions import CommandFailed
from ..logging_config import get_logger
from ..vcs.port import RepositoryQueryPort

logger = get_logger(__name__)


class DefaultBranchResolver:
    """Determine the repository's primary branch.

    Attempts, first success wins:
        1. target of the remote HEAD symbolic ref (``origin/HEAD -> main``)
        2. first configured candidate that exists as a local branch
        3. the checked-out branch
        4. the first local branch git reports
        5. the first configured candidate, unconditionally

    A failing attempt only advances the chain; ``resolve`` never raises.
    The answer is computed once and reused for the lifetime of the resolver.
    """

    def __init__(
        self,
        port: RepositoryQueryPort,
        candidates: Sequence[str] = ("main", "master"),
        remote: str = "origin",
    ):
        if not candidates:
            raise ValueError("candidates must not be empty")
        self._port = port
        self._candidates = tuple(candidates)
        self._remote = remote
        self._resolved: Optional[str] = None
        self._local_branches: Optional[list[str]] = None

    @property
    def resolved(self) -> Optional[str]:
        """Cached answer, or None before the first ``resolve``."""
        return self._resolved

    def resolve(self) -> str:
        if self._resolved is None:
            self._resolved = self._run_chain()
            logger.info("Default branch: %s", self._resolved)
        return self._resolved

    def _run_chain(self) -> str:
        for attempt in (
            self._from_remote_head,
            self._from_candidates,
            self._from_current_branch,
            self._from_first_local,
        ):
            name = attempt()
            if name:
                logger.debug("Default branch resolved by %s", attempt.__name__)
                return name

        logger.debug("No branches found, falling back to %s", self._candidates[0])
        return self._candidates[0]

    def _from_remote_head(self) -> Optional[str]:
        try:
            return self._port.remote_head(self._remote)
        except CommandFailed as e:
            logger.debug("No %s/HEAD: %s", self._remote, e.reason)
            return None

    def _locals(self) -> list[str]:
        if self._local_branches is None:
            try:
                self._local_branches = list(self._port.local_branches())
            except CommandFailed as e:
                logger.debug("Cannot list local branches: %s", e.reason)
                self._local_branches = []
        return self._local_branches

    def _from_candidates(self) -> Optional[str]:
        local = set(self._locals())
        for candidate in self._candidates:
            if candidate in local:
                return candidate
        return None

    def _from_current_branch(self) -> Optional[str]:
        try:
            return self._port.current_branch()
        except CommandFailed as e:
            logger.debug("Cannot read current branch: %s", e.reason)
            return None

    def _from_first_local(self) -> Optional[str]:
        local = self._locals()
        return local[0] if local else None
