"""Parsers for git porcelain output.

Pure functions, no subprocess calls. Each parser accepts the raw stdout of
one git command and returns port records. Malformed lines are skipped;
output that cannot be interpreted at all raises ``ValueError``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

from .port import BranchListing, CommitRecord, DiffStat, RefRecord

# Unit separator: cannot appear in ref names and practically never in author names
FIELD_SEP = "\x1f"

REF_FORMAT = "%(refname)%1f%(objectname)%1f%(committerdate:unix)%1f%(authorname)"

LOG_FORMAT = "%H%x1f%an%x1f%cd"

_LOCAL_PREFIX = "refs/heads/"
_REMOTE_PREFIX = "refs/remotes/"

_FILES_RE = re.compile(r"(\d+) files? changed")
_INSERTIONS_RE = re.compile(r"(\d+) insertions?\(\+\)")
_DELETIONS_RE = re.compile(r"(\d+) deletions?\(-\)")


def _strip_branch_marker(line: str) -> tuple[bool, str]:
    """Split ``git branch`` line into (is_current, rest).

    The first two columns hold ``*`` for the checked-out branch and ``+`` for
    branches checked out in another worktree.
    """
    marker, rest = line[:2], line[2:]
    return marker.strip() == "*", rest.strip()


def _is_alias(name: str) -> bool:
    # remotes/origin/HEAD -> origin/main
    return "->" in name or name.endswith("/HEAD")


def parse_branch_listing(output: str, include_remote: bool = True) -> BranchListing:
    """Parse ``git branch --all --verbose --no-abbrev --no-color``.

    Remote names are reported without the ``remotes/`` prefix
    (``origin/main``). A detached HEAD yields ``current=None``.
    """
    local: list[str] = []
    remote: list[str] = []
    tips: dict[str, str] = {}
    current: Optional[str] = None

    for raw in output.splitlines():
        if not raw.strip():
            continue
        is_current, rest = _strip_branch_marker(raw)
        if rest.startswith("("):
            # (HEAD detached at 1a2b3c) / (no branch, rebasing x)
            continue
        if "->" in rest:
            continue

        parts = rest.split(None, 2)
        name = parts[0]
        tip = parts[1] if len(parts) > 1 else ""

        if name.startswith("remotes/"):
            if not include_remote:
                continue
            name = name[len("remotes/"):]
            if _is_alias(name):
                continue
            remote.append(name)
        else:
            local.append(name)
            if is_current:
                current = name

        if tip:
            tips[name] = tip

    return BranchListing(local=tuple(local), remote=tuple(remote), current=current, tips=tips)


def _parse_unix_timestamp(value: str) -> Optional[datetime]:
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_ref_records(output: str) -> list[RefRecord]:
    """Parse ``git for-each-ref`` output produced with ``REF_FORMAT``."""
    records: list[RefRecord] = []

    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split(FIELD_SEP)
        if len(fields) < 2:
            continue

        refname, tip = fields[0].strip(), fields[1].strip()
        committed_at = _parse_unix_timestamp(fields[2]) if len(fields) > 2 else None
        author = fields[3].strip() if len(fields) > 3 and fields[3].strip() else None

        if refname.startswith(_LOCAL_PREFIX):
            name, is_remote = refname[len(_LOCAL_PREFIX):], False
        elif refname.startswith(_REMOTE_PREFIX):
            name, is_remote = refname[len(_REMOTE_PREFIX):], True
            if _is_alias(name):
                continue
        else:
            continue

        records.append(
            RefRecord(
                name=name,
                tip=tip,
                committed_at=committed_at,
                author=author,
                remote=is_remote,
            )
        )

    return records


def parse_count(output: str) -> int:
    """Parse ``git rev-list --count`` output."""
    value = int(output.strip())
    if value < 0:
        raise ValueError(f"negative commit count: {value}")
    return value


def parse_name_list(output: str) -> list[str]:
    """Parse one-name-per-line output (``for-each-ref --format=%(refname:short)``)."""
    return [line.strip() for line in output.splitlines() if line.strip()]


def parse_merged_branches(output: str, exclude: Optional[str] = None) -> set[str]:
    """Parse ``git branch [--all] --merged <target>`` into branch names."""
    merged: set[str] = set()

    for raw in output.splitlines():
        if not raw.strip():
            continue
        _, name = _strip_branch_marker(raw)
        if name.startswith("(") or "->" in name:
            continue
        if name.startswith("remotes/"):
            name = name[len("remotes/"):]
            if _is_alias(name):
                continue
        if name and name != exclude:
            merged.add(name)

    return merged


def parse_symbolic_ref(output: str, remote: str) -> Optional[str]:
    """Turn ``refs/remotes/<remote>/main`` into ``main``."""
    target = output.strip()
    if not target:
        return None
    prefix = f"{_REMOTE_PREFIX}{remote}/"
    if target.startswith(prefix):
        return target[len(prefix):] or None
    short_prefix = f"{remote}/"
    if target.startswith(short_prefix):
        return target[len(short_prefix):] or None
    return target


def parse_log(output: str) -> list[CommitRecord]:
    """Parse ``git log --date=short`` output produced with ``LOG_FORMAT``."""
    commits: list[CommitRecord] = []

    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split(FIELD_SEP)
        if len(fields) != 3:
            continue
        sha, author, day = fields
        try:
            parsed_day = date.fromisoformat(day.strip())
        except ValueError:
            continue
        commits.append(CommitRecord(sha=sha.strip(), author=author.strip(), day=parsed_day))

    return commits


def parse_shortstat(output: str) -> DiffStat:
    """Parse ``--shortstat`` summaries.

    ``" 3 files changed, 10 insertions(+), 2 deletions(-)"``; either count may
    be missing. Empty output means an empty diff.
    """
    files = _FILES_RE.search(output)
    insertions = _INSERTIONS_RE.search(output)
    deletions = _DELETIONS_RE.search(output)
    return DiffStat(
        files_changed=int(files.group(1)) if files else 0,
        insertions=int(insertions.group(1)) if insertions else 0,
        deletions=int(deletions.group(1)) if deletions else 0,
    )
