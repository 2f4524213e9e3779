"""
Cluster Alias - Types.

============================================================
PURPOSE
============================================================
Plain data types exchanged between the repositories, the
synchronization planner and the directory service.

Nothing here holds a session; ORM rows are converted at the
repository boundary.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass(frozen=True)
class DiscoveryFact:
    """
    What one discovered instance reports about its cluster.

    is_downtime_excluded is true when the instance sits under an
    active, unexpired downtime for the "lost in recovery" reason.
    """

    hostname: str
    port: int
    cluster_name: str
    suggested_alias: str
    read_only: bool
    replica_count: int
    last_checked: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    is_downtime_excluded: bool = False

    @property
    def has_suggested_alias(self) -> bool:
        return bool(self.suggested_alias)

    @property
    def is_seen_since_last_check(self) -> bool:
        """Last probe succeeded. Unknown timestamps count as not seen."""
        if self.last_checked is None or self.last_seen is None:
            return False
        return self.last_checked <= self.last_seen


@dataclass(frozen=True)
class AliasMapping:
    """A row of the alias map."""

    cluster_name: str
    alias: str
    last_registered: Optional[datetime] = None


@dataclass(frozen=True)
class AliasOverride:
    """A row of the override table."""

    cluster_name: str
    alias: str


@dataclass
class SyncReport:
    """
    Outcome of one synchronization run.

    resolved_aliases holds the alias each cluster ended up with after
    the suggestion pass (the last applied suggestion per cluster).
    """

    started_at: datetime
    finished_at: Optional[datetime] = None
    facts_read: int = 0
    suggestions_applied: int = 0
    resolved_aliases: Dict[str, str] = field(default_factory=dict)
    self_aliased_clusters: List[str] = field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "facts_read": self.facts_read,
            "suggestions_applied": self.suggestions_applied,
            "resolved_aliases": dict(self.resolved_aliases),
            "self_aliased_clusters": list(self.self_aliased_clusters),
        }
