"""Version-control access: the query port, its git implementation and cache."""

from .cache import CachingQueryPort, QueryCache
from .gateway import GitGateway, is_git_repository
from .port import BranchListing, CommitRecord, DiffStat, RefRecord, RepositoryQueryPort

__all__ = [
    "RepositoryQueryPort",
    "GitGateway",
    "CachingQueryPort",
    "QueryCache",
    "BranchListing",
    "RefRecord",
    "CommitRecord",
    "DiffStat",
    "is_git_repository",
]
