"""Public API for Bramble.

Example:
    >>> from bramble import analyze
    >>>
    >>> result = analyze("/path/to/repo")
    >>> result.summary.default_branch
    'main'
    >>>
    >>> # Fast pass over the 100 most recently active branches
    >>> result = analyze("/path/to/repo", depth="fast", max_branches=100)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .analysis.models import AnalysisResult
from .analysis.pipeline import BranchAnalysisPipeline
from .analysis.scheduler import ProgressObserver
from .config import AnalysisOptions, load_options
from .exceptions import InvalidPathError
from .logging_config import get_logger
from .vcs.cache import CachingQueryPort, QueryCache
from .vcs.gateway import GitGateway, is_git_repository
from .vcs.port import RepositoryQueryPort

logger = get_logger(__name__)


def validate_repository(path: "Path | str") -> Path:
    """Resolve ``path`` and check it is a git work tree.

    Raises:
        InvalidPathError: If the path does not exist or is not a git repository
    """
    root = Path(path).expanduser().resolve()
    if not root.exists():
        raise InvalidPathError(root, "path does not exist")
    if not root.is_dir():
        raise InvalidPathError(root, "path is not a directory")
    if not is_git_repository(root):
        raise InvalidPathError(root, "not a git repository")
    return root


def build_port(root: Path, options: AnalysisOptions) -> RepositoryQueryPort:
    """Git gateway for ``root``, memoized when caching is enabled."""
    gateway = GitGateway(root, timeout_seconds=options.command_timeout_seconds)
    if options.cache_enabled:
        return CachingQueryPort(gateway, QueryCache())
    return gateway


def analyze(
    path: str = ".",
    config_file: Optional[Path] = None,
    progress: Optional[ProgressObserver] = None,
    options: Optional[AnalysisOptions] = None,
    **overrides,
) -> AnalysisResult:
    """Analyze the branches of a git repository.

    Args:
        path: Path to the repository (default: current directory)
        config_file: Optional explicit config file path
        progress: Optional ``(completed, total, message)`` observer
        options: Fully built options; skips config discovery when given
        **overrides: Option overrides (e.g., depth="deep", max_branches=50)

    Returns:
        AnalysisResult with summary, per-branch analyses, statistics and
        activity overview

    Raises:
        ConfigurationError: If configuration is invalid
        InvalidPathError: If path is not a git repository
        AnalysisFailed: If the repository cannot be enumerated or no branch
            survives filtering
    """
    if options is None:
        options = load_options(config_file=config_file, **overrides)

    root = validate_repository(path)
    logger.info(f"Analyzing repository at: {root}")

    port = build_port(root, options)
    result = BranchAnalysisPipeline(port, str(root), options).analyze(progress=progress)

    if isinstance(port, CachingQueryPort):
        logger.debug(f"Query cache: {port.cache.stats()}")

    return result
