"""Git command gateway: the only module that runs the ``git`` executable."""

from __future__ import annotations

import os
import subprocess
from datetime import date
from pathlib import Path
from typing import Optional

from ..exceptions import CommandFailed
from ..logging_config import get_logger
from .parsing import (
    LOG_FORMAT,
    REF_FORMAT,
    parse_branch_listing,
    parse_count,
    parse_log,
    parse_merged_branches,
    parse_name_list,
    parse_ref_records,
    parse_shortstat,
    parse_symbolic_ref,
)
from .port import BranchListing, CommitRecord, DiffStat, RefRecord

logger = get_logger(__name__)

# Stable, untranslated porcelain output; never block on credential prompts
_GIT_ENV = {"LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0", "GIT_PAGER": "cat"}


def is_git_repository(path: "Path | str", timeout_seconds: int = 5) -> bool:
    """Return True if ``path`` is inside a git work tree."""
    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--is-inside-work-tree"],
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
        return result.returncode == 0 and result.stdout.strip() == "true"
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


class GitGateway:
    """Runs read-only git queries against one repository.

    Implements ``RepositoryQueryPort``. Every failure (non-zero exit, missing
    executable, timeout) raises ``CommandFailed``; nothing is retried.
    """

    def __init__(
        self,
        repo_path: "Path | str",
        timeout_seconds: int = 30,
        git_executable: str = "git",
    ):
        self.repo_path = str(Path(repo_path).resolve())
        self.timeout_seconds = timeout_seconds
        self.git_executable = git_executable
        self._env = {**os.environ, **_GIT_ENV}

    def run(self, *args: str) -> str:
        """Run ``git -C <repo> <args>`` and return stdout."""
        cmd = [self.git_executable, "-C", self.repo_path, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                env=self._env,
            )
        except FileNotFoundError:
            raise CommandFailed(args, f"{self.git_executable} executable not found")
        except subprocess.TimeoutExpired:
            raise CommandFailed(args, f"timed out after {self.timeout_seconds}s")

        if result.returncode != 0:
            stderr = result.stderr.strip() or "no diagnostic output"
            logger.debug("git %s failed (rc=%d): %s", " ".join(args), result.returncode, stderr)
            raise CommandFailed(args, stderr, returncode=result.returncode)

        return result.stdout

    # ------------------------------------------------------------------
    # Branch and ref enumeration
    # ------------------------------------------------------------------

    def list_branches(self, include_remote: bool = True) -> BranchListing:
        args = ["branch", "--verbose", "--no-abbrev", "--no-color"]
        if include_remote:
            args.insert(1, "--all")
        return parse_branch_listing(self.run(*args), include_remote=include_remote)

    def list_refs(self, include_remote: bool = True) -> list[RefRecord]:
        patterns = ["refs/heads/"]
        if include_remote:
            patterns.append("refs/remotes/")
        return parse_ref_records(self.run("for-each-ref", f"--format={REF_FORMAT}", *patterns))

    def local_branches(self) -> list[str]:
        return parse_name_list(self.run("for-each-ref", "--format=%(refname:short)", "refs/heads/"))

    def current_branch(self) -> Optional[str]:
        try:
            output = self.run("symbolic-ref", "--quiet", "--short", "HEAD")
        except CommandFailed as e:
            # Exit status 1 with --quiet: HEAD is detached
            if e.returncode == 1:
                return None
            raise
        return output.strip() or None

    def remote_head(self, remote: str = "origin") -> Optional[str]:
        output = self.run("symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD")
        return parse_symbolic_ref(output, remote)

    def merged_branches(self, target: str, include_remote: bool = True) -> set[str]:
        args = ["branch", "--no-color", "--merged", target]
        if include_remote:
            args.insert(1, "--all")
        return parse_merged_branches(self.run(*args), exclude=target)

    # ------------------------------------------------------------------
    # Commit queries
    # ------------------------------------------------------------------

    def count_commits(self, rev: str) -> int:
        return parse_count(self.run("rev-list", "--count", rev, "--"))

    def list_commit_ids(self, rev: str) -> list[str]:
        return parse_name_list(self.run("rev-list", rev, "--"))

    def log(
        self,
        rev: str,
        no_merges: bool = False,
        max_count: Optional[int] = None,
        since: Optional[date] = None,
    ) -> list[CommitRecord]:
        args = ["log", f"--format={LOG_FORMAT}", "--date=short"]
        if no_merges:
            args.append("--no-merges")
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        if since is not None:
            args.append(f"--since={since.isoformat()}")
        args.extend([rev, "--"])
        return parse_log(self.run(*args))

    def merge_base(self, first: str, second: str) -> Optional[str]:
        try:
            output = self.run("merge-base", first, second)
        except CommandFailed as e:
            # Exit status 1: no common ancestor
            if e.returncode == 1:
                return None
            raise
        return output.strip() or None

    def rev_parse(self, rev: str) -> str:
        return self.run("rev-parse", "--verify", f"{rev}^{{commit}}").strip()

    # ------------------------------------------------------------------
    # Diff statistics
    # ------------------------------------------------------------------

    def commit_diff_stat(self, rev: str) -> DiffStat:
        return parse_shortstat(self.run("show", "--shortstat", "--format=", "--no-color", rev, "--"))

    def diff_stat(self, base: str, head: str, merge_base: bool = False) -> DiffStat:
        separator = "..." if merge_base else ".."
        return parse_shortstat(
            self.run("diff", "--shortstat", "--no-color", f"{base}{separator}{head}", "--")
        )
