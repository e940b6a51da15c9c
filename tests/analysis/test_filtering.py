"""Tests for branch filtering and prioritization."""

from datetime import timedelta

from bramble.analysis.filtering import drop_stale, filter_branches, prioritize
from bramble.analysis.models import BranchFact


def fact(name, now, days_ago=None, current=False):
    last = now - timedelta(days=days_ago) if days_ago is not None else None
    return BranchFact(name=name, tip=name, is_current=current, last_commit_at=last)


class TestDropStale:
    """Staleness cut."""

    def test_no_limit_keeps_everything(self, now):
        """Without a limit even very old branches are kept."""
        facts = [fact("a", now, 400), fact("b", now, 1)]
        assert drop_stale(facts, "main", None, now=now) == facts

    def test_drops_old_branches(self, now):
        """Branches idle past the limit are removed."""
        facts = [fact("main", now, 1), fact("fresh", now, 5), fact("old", now, 90)]
        kept = drop_stale(facts, "main", 30, now=now)
        assert [f.name for f in kept] == ["main", "fresh"]

    def test_boundary_is_kept(self, now):
        """A branch exactly at the cutoff survives."""
        kept = drop_stale([fact("edge", now, 30)], "main", 30, now=now)
        assert [f.name for f in kept] == ["edge"]

    def test_default_and_current_never_dropped(self, now):
        """Protected branches survive however old they are."""
        facts = [fact("main", now, 500), fact("mine", now, 500, current=True), fact("x", now, 500)]
        kept = drop_stale(facts, "main", 30, now=now)
        assert [f.name for f in kept] == ["main", "mine"]

    def test_unknown_timestamp_kept(self, now):
        """A branch without a commit time is never considered stale."""
        kept = drop_stale([fact("mystery", now)], "main", 0, now=now)
        assert [f.name for f in kept] == ["mystery"]


class TestPrioritize:
    """Ordering and capping."""

    def test_default_then_current_then_recent(self, now):
        """Default first, then current, then newest activity."""
        facts = [
            fact("older", now, 10),
            fact("newest", now, 1),
            fact("mine", now, 50, current=True),
            fact("main", now, 100),
        ]
        ordered = prioritize(facts, "main")
        assert [f.name for f in ordered] == ["main", "mine", "newest", "older"]

    def test_ties_broken_by_name(self, now):
        """Equal timestamps fall back to name order."""
        facts = [fact("b", now, 3), fact("a", now, 3)]
        assert [f.name for f in prioritize(facts, "main")] == ["a", "b"]

    def test_unknown_timestamp_sorts_last(self, now):
        """A branch without a timestamp sorts after the oldest known one."""
        facts = [fact("unknown", now), fact("ancient", now, 9000)]
        assert [f.name for f in prioritize(facts, "main")] == ["ancient", "unknown"]

    def test_cap(self, now):
        facts = [fact(f"b{i}", now, i) for i in range(10)]
        assert len(prioritize(facts, "main", max_branches=3)) == 3

    def test_cap_larger_than_input(self, now):
        facts = [fact("a", now, 1)]
        assert prioritize(facts, "main", max_branches=5) == facts


class TestFilterBranches:
    """Combined cut and ordering."""

    def test_cap_of_one_keeps_default(self, now):
        """Even with a newer branch and a current branch, cap 1 keeps the default."""
        facts = [fact("hot", now, 0), fact("mine", now, 1, current=True), fact("main", now, 20)]
        kept = filter_branches(facts, "main", max_branches=1, now=now)
        assert [f.name for f in kept] == ["main"]

    def test_cap_of_two_keeps_default_and_current(self, now):
        """A stale current branch survives the cut and takes the second slot."""
        facts = [fact("hot", now, 0), fact("mine", now, 40, current=True), fact("main", now, 20)]
        kept = filter_branches(facts, "main", max_branches=2, skip_stale_days=30, now=now)
        assert [f.name for f in kept] == ["main", "mine"]

    def test_never_exceeds_cap(self, now):
        """The cap holds whether or not the default is among the facts."""
        facts = [fact(f"b{i}", now, i) for i in range(20)]
        for cap in (1, 5, 19, 20, 25):
            assert len(filter_branches(facts, "b7", max_branches=cap, now=now)) <= cap

    def test_everything_filtered(self, now):
        """Only stale, unprotected branches: nothing survives."""
        facts = [fact("x", now, 90), fact("y", now, 100)]
        assert filter_branches(facts, "main", skip_stale_days=30, now=now) == []

    def test_empty_input(self, now):
        assert filter_branches([], "main", max_branches=3, skip_stale_days=1, now=now) == []
