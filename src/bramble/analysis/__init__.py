"""Branch analysis: collection, filtering, tiered analysis and aggregation."""

from .aggregate import attribute_commits, build_activity_overview, compute_statistics, summarize
from .analyzer import BranchAnalyzer, basic_analysis
from .collector import BulkMetadataCollector
from .default_branch import DefaultBranchResolver
from .filtering import filter_branches
from .models import (
    ActivityOverview,
    AnalysisDepth,
    AnalysisResult,
    BranchAnalysis,
    BranchFact,
    BranchKind,
    BranchStatistics,
    CategoryCount,
    CommitActivity,
    ContributorCount,
    Divergence,
    RepositorySummary,
)
from .pipeline import BranchAnalysisPipeline
from .scheduler import ProgressObserver, run_branch_analyses

__all__ = [
    "AnalysisDepth",
    "BranchKind",
    "BranchFact",
    "BranchAnalysis",
    "Divergence",
    "CommitActivity",
    "RepositorySummary",
    "BranchStatistics",
    "ContributorCount",
    "CategoryCount",
    "ActivityOverview",
    "AnalysisResult",
    "DefaultBranchResolver",
    "BulkMetadataCollector",
    "filter_branches",
    "BranchAnalyzer",
    "basic_analysis",
    "run_branch_analyses",
    "ProgressObserver",
    "summarize",
    "compute_statistics",
    "build_activity_overview",
    "attribute_commits",
    "BranchAnalysisPipeline",
]
