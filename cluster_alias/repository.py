"""
Cluster Alias - Repositories.

============================================================
PURPOSE
============================================================
Data access for the alias directory.

- ClusterAliasRepository: alias map reads, upserts, renames
- ClusterAliasOverrideRepository: override reads, upserts, renames
- DiscoveryFactRepository: read-only view over discovery tables

Repositories never commit. Writes run inside
Database.execute_write_func(), which owns the transaction.

============================================================
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.orm import Session

from cluster_alias.models import (
    ClusterAlias,
    ClusterAliasOverride,
    DatabaseInstance,
    DatabaseInstanceDowntime,
)
from cluster_alias.types import AliasMapping, AliasOverride, DiscoveryFact
from storage.repositories.base import BaseRepository


class ClusterAliasRepository(BaseRepository[ClusterAlias]):
    """
    Repository for the cluster_alias table.

    ============================================================
    METHODS
    ============================================================
    - get_cluster_name_by_alias: alias (or cluster name) -> cluster
    - get_alias_by_cluster_name: cluster -> alias, None if absent
    - list_aliases: every mapping, ordered by cluster name
    - upsert_alias: replace the mapping of one cluster
    - rename_cluster_name: re-key rows onto a new cluster name

    ============================================================
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, ClusterAlias, "ClusterAliasRepository")

    def get_cluster_name_by_alias(self, alias: str) -> Optional[str]:
        """
        Find the cluster an alias points to.

        A row also matches when its cluster name equals the given
        value, so a bare cluster name resolves to itself. When several
        rows match, the lowest cluster name wins.

        Args:
            alias: Alias or cluster name

        Returns:
            Cluster name, or None when nothing matches
        """
        stmt = (
            select(ClusterAlias.cluster_name)
            .where(
                or_(
                    ClusterAlias.alias == alias,
                    ClusterAlias.cluster_name == alias,
                )
            )
            .order_by(ClusterAlias.cluster_name)
            .limit(1)
        )
        return self._execute_scalar(stmt)

    def get_alias_by_cluster_name(self, cluster_name: str) -> Optional[str]:
        """Get the registered alias of a cluster, None if absent."""
        stmt = (
            select(ClusterAlias.alias)
            .where(ClusterAlias.cluster_name == cluster_name)
        )
        return self._execute_scalar(stmt)

    def list_aliases(self) -> List[AliasMapping]:
        stmt = select(ClusterAlias).order_by(ClusterAlias.cluster_name)
        return [
            AliasMapping(
                cluster_name=row.cluster_name,
                alias=row.alias,
                last_registered=row.last_registered,
            )
            for row in self._execute_query(stmt)
        ]

    def upsert_alias(
        self,
        cluster_name: str,
        alias: str,
        registered_at: datetime,
    ) -> None:
        """
        Insert or replace the alias of a cluster.

        Args:
            cluster_name: Cluster identity (primary key)
            alias: Alias to register
            registered_at: Registration timestamp
        """
        self._upsert(
            {
                "cluster_name": cluster_name,
                "alias": alias,
                "last_registered": registered_at,
            },
            key_columns=["cluster_name"],
            context={"field": "cluster_name", "value": cluster_name},
        )

    def rename_cluster_name(self, old_cluster_name: str, new_cluster_name: str) -> int:
        """
        Re-key alias rows from one cluster name to another.

        Returns:
            Number of rows updated
        """
        stmt = (
            update(ClusterAlias)
            .where(ClusterAlias.cluster_name == old_cluster_name)
            .values(cluster_name=new_cluster_name)
            .execution_options(synchronize_session=False)
        )
        return self._execute_update(
            stmt,
            "rename_cluster_name",
            {"field": "cluster_name", "value": new_cluster_name},
        )


class ClusterAliasOverrideRepository(BaseRepository[ClusterAliasOverride]):
    """
    Repository for the cluster_alias_override table.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, ClusterAliasOverride, "ClusterAliasOverrideRepository")

    def get_override(self, cluster_name: str) -> Optional[str]:
        """Get the pinned alias of a cluster, None if not pinned."""
        entity = self._get_by_id(cluster_name)
        return entity.alias if entity is not None else None

    def list_overrides(self) -> List[AliasOverride]:
        stmt = select(ClusterAliasOverride).order_by(ClusterAliasOverride.cluster_name)
        return [
            AliasOverride(cluster_name=row.cluster_name, alias=row.alias)
            for row in self._execute_query(stmt)
        ]

    def upsert_override(self, cluster_name: str, alias: str) -> None:
        """Insert or replace the pinned alias of a cluster."""
        self._upsert(
            {"cluster_name": cluster_name, "alias": alias},
            key_columns=["cluster_name"],
            context={"field": "cluster_name", "value": cluster_name},
        )

    def rename_cluster_name(self, old_cluster_name: str, new_cluster_name: str) -> int:
        stmt = (
            update(ClusterAliasOverride)
            .where(ClusterAliasOverride.cluster_name == old_cluster_name)
            .values(cluster_name=new_cluster_name)
            .execution_options(synchronize_session=False)
        )
        return self._execute_update(
            stmt,
            "rename_cluster_name",
            {"field": "cluster_name", "value": new_cluster_name},
        )


class DiscoveryFactRepository(BaseRepository[DatabaseInstance]):
    """
    Read-only view over database_instance and its downtimes.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, DatabaseInstance, "DiscoveryFactRepository")

    def list_discovery_facts(
        self,
        lost_in_recovery_reason: str,
        now: datetime,
    ) -> List[DiscoveryFact]:
        """
        Read one fact per discovered instance.

        An instance is downtime-excluded when its downtime is active,
        has not yet ended at `now`, and carries the given reason.

        Args:
            lost_in_recovery_reason: Downtime reason marking demoted masters
            now: Reference time for downtime expiry

        Returns:
            Facts ordered by cluster name, hostname, port
        """
        downtime = DatabaseInstanceDowntime
        excluded = and_(
            downtime.downtime_active.is_(True),
            downtime.end_timestamp > now,
            downtime.reason == lost_in_recovery_reason,
        )
        stmt = (
            select(
                DatabaseInstance.hostname,
                DatabaseInstance.port,
                DatabaseInstance.cluster_name,
                DatabaseInstance.suggested_cluster_alias,
                DatabaseInstance.read_only,
                DatabaseInstance.num_replica_hosts,
                DatabaseInstance.last_checked,
                DatabaseInstance.last_seen,
                case((excluded, True), else_=False).label("is_downtime_excluded"),
            )
            .outerjoin(
                downtime,
                and_(
                    downtime.hostname == DatabaseInstance.hostname,
                    downtime.port == DatabaseInstance.port,
                ),
            )
            .order_by(
                DatabaseInstance.cluster_name,
                DatabaseInstance.hostname,
                DatabaseInstance.port,
            )
        )
        return [
            DiscoveryFact(
                hostname=row["hostname"],
                port=row["port"],
                cluster_name=row["cluster_name"] or "",
                suggested_alias=row["suggested_cluster_alias"] or "",
                read_only=bool(row["read_only"]),
                replica_count=row["num_replica_hosts"] or 0,
                last_checked=row["last_checked"],
                last_seen=row["last_seen"],
                is_downtime_excluded=bool(row["is_downtime_excluded"]),
            )
            for row in self._execute_rows(stmt)
        ]
