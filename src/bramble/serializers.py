"""JSON-safe serialization of analysis results.

Transformation rules:
- Datetimes: ISO-8601 with UTC offset (second precision kept)
- Dates: ISO-8601 calendar days
- Enums: their string value
- Tuples: lists
Every field of the result survives ``result_from_dict(result_to_dict(r))``.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Optional

from .analysis.models import (
    ActivityOverview,
    AnalysisDepth,
    AnalysisResult,
    BranchAnalysis,
    BranchKind,
    BranchStatistics,
    CategoryCount,
    CommitActivity,
    ContributorCount,
    Divergence,
    RepositorySummary,
)
from .config import AnalysisOptions


def _datetime_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _datetime_from_str(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _activity_to_list(series: tuple[CommitActivity, ...]) -> list[dict[str, Any]]:
    return [{"date": a.date.isoformat(), "count": a.count} for a in series]


def _activity_from_list(items: list[dict[str, Any]]) -> tuple[CommitActivity, ...]:
    return tuple(CommitActivity(date=date.fromisoformat(i["date"]), count=int(i["count"])) for i in items)


def branch_to_dict(branch: BranchAnalysis) -> dict[str, Any]:
    return {
        "name": branch.name,
        "tip": branch.tip,
        "is_current": branch.is_current,
        "last_activity": _datetime_to_str(branch.last_activity),
        "last_commit_author": branch.last_commit_author,
        "commit_count": branch.commit_count,
        "kind": branch.kind.value,
        "is_stale": branch.is_stale,
        "divergence": {"ahead": branch.divergence.ahead, "behind": branch.divergence.behind},
        "contributors": list(branch.contributors),
        "mergeable": branch.mergeable,
        "conflict_count": branch.conflict_count,
        "commit_frequency": _activity_to_list(branch.commit_frequency),
        "size": branch.size,
        "depth": branch.depth.value,
        "degraded": branch.degraded,
    }


def branch_from_dict(data: dict[str, Any]) -> BranchAnalysis:
    return BranchAnalysis(
        name=data["name"],
        tip=data["tip"],
        is_current=bool(data["is_current"]),
        last_activity=_datetime_from_str(data.get("last_activity")),
        last_commit_author=data.get("last_commit_author"),
        commit_count=int(data["commit_count"]),
        kind=BranchKind(data["kind"]),
        is_stale=bool(data["is_stale"]),
        divergence=Divergence(**data["divergence"]),
        contributors=tuple(data.get("contributors", ())),
        mergeable=bool(data["mergeable"]),
        conflict_count=int(data["conflict_count"]),
        commit_frequency=_activity_from_list(data.get("commit_frequency", [])),
        size=int(data["size"]),
        depth=AnalysisDepth(data["depth"]),
        degraded=bool(data.get("degraded", False)),
    )


def options_to_dict(options: AnalysisOptions) -> dict[str, Any]:
    data = asdict(options)
    data["depth"] = options.depth.value
    data["default_branch_candidates"] = list(options.default_branch_candidates)
    return data


def result_to_dict(result: AnalysisResult) -> dict[str, Any]:
    """Serialize an AnalysisResult to JSON-compatible primitives."""
    activity = result.activity
    return {
        "repository": asdict(result.summary),
        "branches": [branch_to_dict(b) for b in result.branches],
        "statistics": asdict(result.statistics),
        "activity_overview": {
            "daily_activity": _activity_to_list(activity.daily_activity),
            "top_contributors": [asdict(c) for c in activity.top_contributors],
            "branch_categories": [asdict(c) for c in activity.branch_categories],
        },
        "options": options_to_dict(result.options) if result.options is not None else None,
        "duration_seconds": result.duration_seconds,
    }


def result_from_dict(data: dict[str, Any]) -> AnalysisResult:
    """Rebuild an AnalysisResult from ``result_to_dict`` output."""
    overview = data["activity_overview"]
    options = data.get("options")
    return AnalysisResult(
        summary=RepositorySummary(**data["repository"]),
        branches=tuple(branch_from_dict(b) for b in data["branches"]),
        statistics=BranchStatistics(**data["statistics"]),
        activity=ActivityOverview(
            daily_activity=_activity_from_list(overview["daily_activity"]),
            top_contributors=tuple(ContributorCount(**c) for c in overview["top_contributors"]),
            branch_categories=tuple(CategoryCount(**c) for c in overview["branch_categories"]),
        ),
        options=AnalysisOptions(**options) if options is not None else None,
        duration_seconds=float(data.get("duration_seconds", 0.0)),
    )
