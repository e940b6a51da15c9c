"""Exception hierarchy for Bramble."""

from .analysis import (
    AnalysisError,
    AnalysisFailed,
    BranchAnalysisError,
    CommandFailed,
)
from .base import BrambleError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)

__all__ = [
    "BrambleError",
    "AnalysisError",
    "AnalysisFailed",
    "CommandFailed",
    "BranchAnalysisError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
