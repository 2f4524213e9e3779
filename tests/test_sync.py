"""
Tests for synchronization planning.

============================================================
TEST SCENARIOS
============================================================
1. Eligibility filter (empty alias, downtime, no cluster)
2. Tie-break orderings between two instances of one cluster
3. Last applied suggestion wins per cluster
4. Self-alias candidates

============================================================
"""

from datetime import datetime, timedelta, timezone

import pytest

from cluster_alias.sync import (
    is_eligible_suggestion,
    order_suggestions,
    resolve_suggestions,
    self_alias_candidates,
    suggestion_order_key,
)
from cluster_alias.types import DiscoveryFact


CHECKED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_fact(
    hostname,
    alias,
    cluster_name="clusterA",
    seen=True,
    read_only=False,
    replicas=0,
    excluded=False,
):
    """Build a fact; seen=False means the last probe did not succeed."""
    return DiscoveryFact(
        hostname=hostname,
        port=3306,
        cluster_name=cluster_name,
        suggested_alias=alias,
        read_only=read_only,
        replica_count=replicas,
        last_checked=CHECKED,
        last_seen=CHECKED if seen else CHECKED - timedelta(minutes=10),
        is_downtime_excluded=excluded,
    )


# ============================================================
# FACT PROPERTIES
# ============================================================

class TestDiscoveryFact:
    """Tests for derived fact properties."""

    def test_seen_when_checked_before_seen(self):
        fact = make_fact("h1", "a")
        assert fact.is_seen_since_last_check is True

    def test_not_seen_when_checked_after_seen(self):
        fact = make_fact("h1", "a", seen=False)
        assert fact.is_seen_since_last_check is False

    def test_unknown_timestamps_count_as_not_seen(self):
        fact = DiscoveryFact(
            hostname="h1",
            port=3306,
            cluster_name="clusterA",
            suggested_alias="a",
            read_only=False,
            replica_count=0,
            last_checked=None,
            last_seen=CHECKED,
        )
        assert fact.is_seen_since_last_check is False


# ============================================================
# ELIGIBILITY
# ============================================================

class TestEligibility:
    """Tests for which facts may suggest an alias."""

    def test_empty_suggestion_is_ignored(self):
        assert is_eligible_suggestion(make_fact("h1", "")) is False

    def test_downtime_excluded_is_ignored(self):
        assert is_eligible_suggestion(make_fact("h1", "payments", excluded=True)) is False

    def test_missing_cluster_name_is_ignored(self):
        assert is_eligible_suggestion(make_fact("h1", "payments", cluster_name="")) is False

    def test_suggesting_instance_is_eligible(self):
        assert is_eligible_suggestion(make_fact("h1", "payments")) is True

    def test_order_suggestions_drops_ineligible(self):
        facts = [
            make_fact("h1", ""),
            make_fact("h2", "payments", excluded=True),
            make_fact("h3", "billing"),
        ]
        assert [f.hostname for f in order_suggestions(facts)] == ["h3"]


# ============================================================
# TIE-BREAK ORDERINGS
# ============================================================

class TestTieBreakOrdering:
    """
    Two instances of one cluster disagree; which alias stays.

    The winner is the instance sorted last: seen since last check,
    then writable, then most replicas.
    """

    @pytest.mark.parametrize(
        "first, second, winner",
        [
            # Freshness dominates everything else
            (
                dict(seen=False, read_only=False, replicas=5),
                dict(seen=True, read_only=True, replicas=0),
                "second",
            ),
            (
                dict(seen=True, read_only=True, replicas=0),
                dict(seen=False, read_only=False, replicas=5),
                "first",
            ),
            # Same freshness: read-only sorts first, writable is applied last
            (
                dict(seen=True, read_only=False, replicas=0),
                dict(seen=True, read_only=True, replicas=0),
                "first",
            ),
            (
                dict(seen=False, read_only=True, replicas=9),
                dict(seen=False, read_only=False, replicas=0),
                "second",
            ),
            # Same freshness and role: most replicas is applied last
            (
                dict(seen=True, read_only=True, replicas=3),
                dict(seen=True, read_only=True, replicas=1),
                "first",
            ),
            (
                dict(seen=True, read_only=False, replicas=0),
                dict(seen=True, read_only=False, replicas=2),
                "second",
            ),
            # Full tie: read order decides, later wins
            (
                dict(seen=True, read_only=True, replicas=1),
                dict(seen=True, read_only=True, replicas=1),
                "second",
            ),
        ],
    )
    def test_winner(self, first, second, winner):
        facts = [make_fact("h1", "first", **first), make_fact("h2", "second", **second)]
        resolved = resolve_suggestions(order_suggestions(facts))
        assert resolved == {"clusterA": winner}

    def test_fresh_read_only_leaf_beats_stale_writable_hub(self):
        stale_hub = make_fact("hub", "old-name", seen=False, read_only=False, replicas=4)
        fresh_leaf = make_fact("leaf", "payments", seen=True, read_only=True, replicas=0)

        for facts in ([stale_hub, fresh_leaf], [fresh_leaf, stale_hub]):
            resolved = resolve_suggestions(order_suggestions(facts))
            assert resolved["clusterA"] == "payments"

    def test_order_key_components(self):
        fact = make_fact("h1", "a", seen=True, read_only=True, replicas=2)
        assert suggestion_order_key(fact) == (1, 0, 2)

    def test_every_fact_is_kept_in_order(self):
        facts = [
            make_fact("h1", "x", seen=True),
            make_fact("h2", "y", seen=False),
            make_fact("h3", "z", cluster_name="clusterB"),
        ]
        ordered = order_suggestions(facts)
        assert [f.hostname for f in ordered] == ["h2", "h1", "h3"]

    def test_clusters_resolve_independently(self):
        facts = [
            make_fact("a1", "payments", cluster_name="clusterA"),
            make_fact("b1", "billing", cluster_name="clusterB", seen=False),
        ]
        assert resolve_suggestions(order_suggestions(facts)) == {
            "clusterA": "payments",
            "clusterB": "billing",
        }


# ============================================================
# SELF-ALIAS CANDIDATES
# ============================================================

class TestSelfAliasCandidates:
    """Tests for the fallback pass selection."""

    def test_cluster_without_any_suggestion(self):
        facts = [make_fact("h1", ""), make_fact("h2", "")]
        assert self_alias_candidates(facts) == ["clusterA"]

    def test_cluster_with_one_suggestion_is_skipped(self):
        facts = [make_fact("h1", ""), make_fact("h2", "payments")]
        assert self_alias_candidates(facts) == []

    def test_downtime_does_not_make_a_cluster_a_candidate(self):
        facts = [make_fact("h1", ""), make_fact("h2", "payments", excluded=True)]
        assert self_alias_candidates(facts) == []

    def test_candidates_are_sorted_and_skip_blank_clusters(self):
        facts = [
            make_fact("h1", "", cluster_name="zeta"),
            make_fact("h2", "", cluster_name="alpha"),
            make_fact("h3", "", cluster_name=""),
        ]
        assert self_alias_candidates(facts) == ["alpha", "zeta"]
