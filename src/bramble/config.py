"""Configuration loading and management for Bramble.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisOptions)
    2. Global config (~/.bramble.toml)
    3. Project config (./bramble.toml)
    4. Explicit config file
    5. Environment variables (BRAMBLE_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> options = load_options(depth="deep", max_branches=50)
    >>> options.depth
    <AnalysisDepth.DEEP: 'deep'>
    >>> options.max_branches
    50
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union, get_type_hints

from .analysis.models import AnalysisDepth
from .exceptions import ConfigurationError, InvalidConfigError

# Concurrency default: CPU count, capped at 8 to avoid overwhelming git
_MAX_DEFAULT_CONCURRENCY = 8


def default_concurrency() -> int:
    return max(1, min(os.cpu_count() or 1, _MAX_DEFAULT_CONCURRENCY))


@dataclass(frozen=True)
class AnalysisOptions:
    """Options for one branch analysis run.

    All fields have sensible defaults. Users typically override only a few
    via CLI flags or a config file.

    Attributes:
        Scheduling:
            max_concurrency: Branch analyses in flight at once (None = min(cores, 8))
            depth: Analysis tier, "fast" | "normal" | "deep"

        Filtering:
            max_branches: Keep at most this many branches (None = unlimited)
            skip_stale_days: Drop branches idle longer than this (None = keep all)
            include_remote_branches: Analyze remote-tracking branches too

        Default branch resolution:
            default_branch_candidates: Names tried in order when the remote HEAD is unknown
            remote_name: Remote whose HEAD names the default branch

        Metrics:
            stale_days: Freshness window for the per-branch stale flag
            frequency_window_days: Lookback window for commit frequency
            top_contributors: Size of the contributor leaderboard

        Execution:
            cache_enabled: Memoize repeated git queries within the run
            command_timeout_seconds: Timeout for each git invocation
    """

    max_concurrency: Optional[int] = None
    depth: AnalysisDepth = AnalysisDepth.NORMAL

    max_branches: Optional[int] = None
    skip_stale_days: Optional[int] = None
    include_remote_branches: bool = True

    default_branch_candidates: tuple[str, ...] = ("main", "master")
    remote_name: str = "origin"

    stale_days: int = 30
    frequency_window_days: int = 30
    top_contributors: int = 10

    cache_enabled: bool = True
    command_timeout_seconds: int = 30

    def __post_init__(self) -> None:
        """Validate and normalize options."""
        # TOML and env vars deliver plain strings and lists
        if not isinstance(self.depth, AnalysisDepth):
            try:
                object.__setattr__(self, "depth", AnalysisDepth(str(self.depth).lower()))
            except ValueError:
                raise ValueError(
                    f"depth must be one of {[d.value for d in AnalysisDepth]}, got {self.depth!r}"
                )
        if not isinstance(self.default_branch_candidates, tuple):
            object.__setattr__(
                self, "default_branch_candidates", tuple(self.default_branch_candidates)
            )

        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.max_branches is not None and self.max_branches < 1:
            raise ValueError("max_branches must be at least 1")
        if self.skip_stale_days is not None and self.skip_stale_days < 0:
            raise ValueError("skip_stale_days must be non-negative")

        if not self.default_branch_candidates:
            raise ValueError("default_branch_candidates must not be empty")
        if not all(isinstance(c, str) and c for c in self.default_branch_candidates):
            raise ValueError("default_branch_candidates must be non-empty strings")
        if not self.remote_name:
            raise ValueError("remote_name must not be empty")

        if self.stale_days < 1:
            raise ValueError("stale_days must be at least 1")
        if self.frequency_window_days < 1:
            raise ValueError("frequency_window_days must be at least 1")
        if self.top_contributors < 1:
            raise ValueError("top_contributors must be at least 1")
        if self.command_timeout_seconds < 1:
            raise ValueError("command_timeout_seconds must be at least 1")

    @property
    def effective_concurrency(self) -> int:
        """Concurrency actually used for the run."""
        return self.max_concurrency or default_concurrency()


def load_options(config_file: Optional[Path] = None, **overrides) -> AnalysisOptions:
    """Load options with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset flags do not mask file settings.

    Returns:
        Validated AnalysisOptions instance

    Raises:
        ConfigurationError: If a config file is missing or invalid, or a value
            fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".bramble.toml"
    if global_config.exists():
        merged.update(_load_toml_section(global_config))

    project_config = Path.cwd() / "bramble.toml"
    if project_config.exists():
        merged.update(_load_toml_section(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_section(config_file))

    merged.update(_load_env_vars())

    merged.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(AnalysisOptions)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise InvalidConfigError(unknown[0], merged[unknown[0]], "unknown option")

    try:
        return AnalysisOptions(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load options from BRAMBLE_* environment variables.

    Supported environment variables:
        BRAMBLE_MAX_CONCURRENCY: int
        BRAMBLE_DEPTH: fast/normal/deep
        BRAMBLE_MAX_BRANCHES: int
        BRAMBLE_SKIP_STALE_DAYS: int
        BRAMBLE_INCLUDE_REMOTE_BRANCHES: bool (true/false/1/0)
        BRAMBLE_DEFAULT_BRANCH_CANDIDATES: comma-separated names
        BRAMBLE_REMOTE_NAME: str
        BRAMBLE_STALE_DAYS: int
        BRAMBLE_FREQUENCY_WINDOW_DAYS: int
        BRAMBLE_TOP_CONTRIBUTORS: int
        BRAMBLE_CACHE_ENABLED: bool
        BRAMBLE_COMMAND_TIMEOUT_SECONDS: int
    """
    type_hints = get_type_hints(AnalysisOptions)

    result: dict[str, Any] = {}

    for option in fields(AnalysisOptions):
        env_key = f"BRAMBLE_{option.name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        try:
            result[option.name] = _parse_env_value(env_value, type_hints[option.name])
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    # Optional[X] is Union[X, None]
    if getattr(type_hint, "__origin__", None) is Union:
        non_none = [t for t in type_hint.__args__ if t is not type(None)]
        if non_none:
            type_hint = non_none[0]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if getattr(type_hint, "__origin__", None) is tuple:
        return tuple(part.strip() for part in value.split(",") if part.strip())

    # str and AnalysisDepth (coerced in __post_init__)
    return value


def _load_toml_section(path: Path) -> dict:
    """Read a TOML file and return its ``[analysis]`` table (or top level)."""
    try:
        data = _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")

    section = data.get("analysis", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid config file '{path}': [analysis] must be a table")
    return dict(section)


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
