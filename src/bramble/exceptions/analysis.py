"""Analysis-related exceptions: git queries, fatal phases, degraded branches."""

from typing import Dict, Optional, Sequence

from .base import BrambleError


class AnalysisError(BrambleError):
    """Base class for analysis-related errors."""
    pass


class AnalysisFailed(AnalysisError):
    """Raised when a whole analysis run cannot produce a result.

    ``phase`` names the pipeline step that failed (``collect``, ``filter``)
    so the caller can report a single clear message.
    """

    def __init__(self, phase: str, reason: str):
        super().__init__(
            f"Branch analysis failed during {phase}: {reason}",
            details={"phase": phase},
        )
        self.phase = phase
        self.reason = reason


class CommandFailed(AnalysisError):
    """Raised when a git query exits non-zero, times out, or cannot start."""

    def __init__(
        self,
        args: Sequence[str],
        reason: str,
        returncode: Optional[int] = None,
    ):
        details: Dict[str, str] = {"command": " ".join(args)}
        if returncode is not None:
            details["returncode"] = str(returncode)

        super().__init__(f"git command failed: {reason}", details=details)
        self.command = tuple(args)
        self.reason = reason
        self.returncode = returncode


class BranchAnalysisError(AnalysisError):
    """Raised when a single branch cannot be analyzed at the requested depth."""

    def __init__(self, branch: str, reason: str):
        super().__init__(
            f"Failed to analyze branch {branch}",
            details={"branch": branch, "reason": reason},
        )
        self.branch = branch
        self.reason = reason
