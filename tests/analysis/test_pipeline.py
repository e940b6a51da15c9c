"""End-to-end tests for the branch analysis pipeline."""

import pytest

from bramble.analysis.models import AnalysisDepth, ContributorCount, Divergence
from bramble.analysis.pipeline import BranchAnalysisPipeline
from bramble.api import analyze, validate_repository
from bramble.config import AnalysisOptions
from bramble.exceptions import AnalysisFailed, InvalidPathError


def run(repo, clock, progress=None, **options):
    options.setdefault("max_concurrency", 2)
    pipeline = BranchAnalysisPipeline(repo, "/repo", AnalysisOptions(**options), clock=clock)
    return pipeline.analyze(progress=progress)


class TestFakeRepository:
    """Pipeline over the in-memory repository."""

    def test_fast_skip_stale(self, branch_repo, clock):
        """Fast analysis with a 30-day cut drops the idle branch."""
        result = run(branch_repo, clock, depth="fast", skip_stale_days=30)

        assert [b.name for b in result.branches] == ["main", "feature/x"]
        assert result.summary.total_branches == 2
        assert result.summary.default_branch == "main"
        assert result.branch("feature/x").divergence == Divergence(ahead=2, behind=1)
        assert all(b.depth is AnalysisDepth.FAST for b in result.branches)

    def test_cap_of_one(self, branch_repo, clock):
        """A cap of one leaves only the default branch."""
        result = run(branch_repo, clock, max_branches=1)
        assert [b.name for b in result.branches] == ["main"]
        assert result.branch("main").divergence == Divergence(0, 0)

    def test_filter_order(self, branch_repo, clock):
        """Results follow priority order regardless of completion order."""
        result = run(branch_repo, clock, max_concurrency=3)
        assert [b.name for b in result.branches] == ["main", "feature/x", "old"]

    def test_summary_and_aggregates(self, branch_repo, clock):
        """Summary, statistics and overview are computed from the analyses."""
        result = run(branch_repo, clock)

        assert result.summary.path == "/repo"
        assert result.summary.stale_branches == 1
        assert result.summary.local_branches == 3
        assert result.statistics.total_commits == 9
        assert result.statistics.most_active == "feature/x"
        assert [c.category for c in result.activity.branch_categories] == [
            "Active",
            "Stale",
            "Mergeable",
            "Conflicted",
        ]
        assert result.activity.top_contributors[0] == ContributorCount("alice", 5)
        assert result.options.depth is AnalysisDepth.NORMAL
        assert result.duration_seconds >= 0

    def test_remote_head_decides_default(self, branch_repo, clock):
        """The remote HEAD outranks a local main."""
        branch_repo.remote_head_target = "feature/x"
        result = run(branch_repo, clock, depth="fast")
        assert result.summary.default_branch == "feature/x"
        assert result.branches[0].name == "feature/x"

    def test_degraded_branch_kept(self, branch_repo, clock):
        """One failing branch degrades alone; the run still succeeds."""
        branch_repo.failing_branches.add("feature/x")
        result = run(branch_repo, clock)

        assert len(result.branches) == 3
        assert result.branch("feature/x").degraded
        assert not result.branch("main").degraded
        assert not result.branch("old").degraded

    def test_deep(self, branch_repo, clock):
        """Deep runs count conflicts for every diverged branch."""
        result = run(branch_repo, clock, depth="deep")
        feature = result.branch("feature/x")
        assert feature.conflict_count == 3
        assert feature.mergeable is False
        assert result.summary.conflicted_branches == 2

    def test_remote_branches_excluded(self, branch_repo, clock):
        branch_repo.add_branch("origin/main", branch_repo.history["main"], remote=True)
        result = run(branch_repo, clock, depth="fast", include_remote_branches=False)
        assert "origin/main" not in [b.name for b in result.branches]


class TestProgress:
    def test_events(self, branch_repo, clock):
        """A (0, total) event precedes one event per analyzed branch."""
        events = []
        run(branch_repo, clock, progress=lambda done, total, msg: events.append((done, total)))
        assert events == [(0, 3), (1, 3), (2, 3), (3, 3)]


class TestFatalErrors:
    def test_empty_repository(self, fake_repo, clock):
        """A repository without branches fails at the filter phase."""
        with pytest.raises(AnalysisFailed) as exc_info:
            run(fake_repo, clock)
        assert exc_info.value.phase == "filter"

    def test_everything_filtered(self, branch_repo, clock):
        """Only unprotected stale branches: the run fails at the filter phase."""
        branch_repo.local.remove("main")
        branch_repo.current = None
        branch_repo.remote_head_target = "trunk"
        branch_repo.local.remove("feature/x")
        with pytest.raises(AnalysisFailed) as exc_info:
            run(branch_repo, clock, skip_stale_days=30)
        assert exc_info.value.phase == "filter"

    def test_enumeration_failure(self, branch_repo, clock):
        """A failed ref query fails the run at the collect phase."""
        branch_repo.failing.add("list_refs")
        with pytest.raises(AnalysisFailed) as exc_info:
            run(branch_repo, clock)
        assert exc_info.value.phase == "collect"


class TestRealRepository:
    """Public API against a real git repository."""

    def test_analyze(self, git_repo):
        """A deep run over real git history."""
        result = analyze(str(git_repo), options=AnalysisOptions(depth="deep", max_concurrency=2))

        assert result.summary.default_branch == "main"
        assert {b.name for b in result.branches} == {"main", "feature/x", "old", "done"}

        feature = result.branch("feature/x")
        assert feature.divergence == Divergence(ahead=1, behind=1)
        assert feature.contributors == ("Carol", "Alice")
        assert feature.size == 2
        assert feature.conflict_count == 2

        assert result.branch("done").mergeable is True
        assert result.branch("old").is_stale is True
        assert not any(b.degraded for b in result.branches)

    def test_skip_stale(self, git_repo):
        """The 2020 branch is dropped by a 30 day cut."""
        result = analyze(
            str(git_repo),
            options=AnalysisOptions(depth="fast", skip_stale_days=30, cache_enabled=False),
        )
        assert "old" not in [b.name for b in result.branches]
        assert result.branches[0].name == "main"

    def test_overrides(self, git_repo, monkeypatch, tmp_path):
        """Keyword overrides flow through configuration loading."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        result = analyze(str(git_repo), depth="fast", max_branches=2)
        assert len(result.branches) == 2
        assert result.options.max_branches == 2


class TestValidateRepository:
    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidPathError):
            validate_repository(tmp_path / "nope")

    def test_file_path(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(InvalidPathError):
            validate_repository(target)

    def test_plain_directory(self, tmp_path):
        """A directory outside any work tree is rejected with a reason."""
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(InvalidPathError) as exc_info:
            validate_repository(plain)
        assert exc_info.value.reason == "not a git repository"

    def test_repository(self, git_repo):
        assert validate_repository(git_repo) == git_repo.resolve()
