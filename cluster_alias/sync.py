"""
Cluster Alias - Synchronization Planning.

============================================================
PURPOSE
============================================================
Decides, from discovery facts, which alias rows a synchronization
pass writes and in which order.

============================================================
ORDERING
============================================================
Eligible suggestions are applied one by one as upserts keyed by
cluster name, so for each cluster the LAST applied suggestion is
the one left in the alias map. Suggestions are sorted by:

1. seen since last check    ascending   (unreachable first)
2. read_only                descending  (read-only first)
3. replica_count            ascending   (fewest replicas first)

Ties keep the order facts were read in (cluster, host, port).

============================================================
SELF-ALIAS FALLBACK
============================================================
A cluster whose every instance reports an empty suggestion gets
alias == cluster name. Downtime is not considered here: a cluster
with a suggestion only on a downtimed instance gets neither row.

============================================================
"""

from typing import Dict, Iterable, List, Tuple

from cluster_alias.types import DiscoveryFact


def suggestion_order_key(fact: DiscoveryFact) -> Tuple[int, int, int]:
    """Sort key for the suggestion pass. Later sorts win."""
    return (
        1 if fact.is_seen_since_last_check else 0,
        0 if fact.read_only else 1,
        fact.replica_count,
    )


def is_eligible_suggestion(fact: DiscoveryFact) -> bool:
    """Whether a fact may contribute its suggested alias."""
    return (
        bool(fact.cluster_name)
        and fact.has_suggested_alias
        and not fact.is_downtime_excluded
    )


def order_suggestions(facts: Iterable[DiscoveryFact]) -> List[DiscoveryFact]:
    """
    Filter and order facts for the suggestion pass.

    Args:
        facts: Discovery facts in read order

    Returns:
        Eligible facts in application order
    """
    eligible = [fact for fact in facts if is_eligible_suggestion(fact)]
    return sorted(eligible, key=suggestion_order_key)


def resolve_suggestions(ordered: Iterable[DiscoveryFact]) -> Dict[str, str]:
    """
    Replay ordered suggestions with replace semantics.

    Returns:
        Winning alias per cluster name
    """
    resolved: Dict[str, str] = {}
    for fact in ordered:
        resolved[fact.cluster_name] = fact.suggested_alias
    return resolved


def self_alias_candidates(facts: Iterable[DiscoveryFact]) -> List[str]:
    """
    Clusters in which no instance suggests an alias.

    Returns:
        Sorted cluster names
    """
    suggests: Dict[str, bool] = {}
    for fact in facts:
        if not fact.cluster_name:
            continue
        suggests[fact.cluster_name] = (
            suggests.get(fact.cluster_name, False) or fact.has_suggested_alias
        )
    return sorted(name for name, has_alias in suggests.items() if not has_alias)
