"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import AnalysisOptions, load_options

console = Console()


def resolve_options(
    config: Optional[Path] = None,
    fast: bool = False,
    deep: bool = False,
    max_branches: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    skip_stale: Optional[int] = None,
    stale_days: Optional[int] = None,
    no_cache: bool = False,
    no_remote: bool = False,
) -> AnalysisOptions:
    """Build options from CLI flags."""
    overrides = {}
    if fast:
        overrides["depth"] = "fast"
    elif deep:
        overrides["depth"] = "deep"
    if max_branches is not None:
        overrides["max_branches"] = max_branches
    if max_concurrency is not None:
        overrides["max_concurrency"] = max_concurrency
    if skip_stale is not None:
        overrides["skip_stale_days"] = skip_stale
    if stale_days is not None:
        overrides["stale_days"] = stale_days
    if no_cache:
        overrides["cache_enabled"] = False
    if no_remote:
        overrides["include_remote_branches"] = False
    return load_options(config_file=config, **overrides)
