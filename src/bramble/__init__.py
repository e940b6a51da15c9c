"""
Bramble - Git Branch Analysis

Analyzes every branch of a git repository: divergence from the default
branch, contributors, merge status, size and recent activity, plus
repository-wide statistics and an activity overview.
"""

__version__ = "1.1.0"

from .analysis.models import (
    AnalysisDepth,
    AnalysisResult,
    BranchAnalysis,
    BranchFact,
)
from .api import analyze
from .config import AnalysisOptions, load_options
from .exceptions import AnalysisFailed, BrambleError, CommandFailed

__all__ = [
    "analyze",  # Main entry point
    "AnalysisOptions",
    "load_options",
    "AnalysisDepth",
    "AnalysisResult",
    "BranchAnalysis",
    "BranchFact",
    "BrambleError",
    "AnalysisFailed",
    "CommandFailed",
]
