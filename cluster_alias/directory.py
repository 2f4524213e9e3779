"""
Cluster Alias - Directory Service.

============================================================
PURPOSE
============================================================
Maintains the mapping between stable cluster aliases and volatile
cluster names.

- Resolves alias -> cluster and cluster -> alias
- Writes aliases and operator overrides
- Synchronizes aliases from discovery facts
- Re-points aliases when recovery renames a cluster

============================================================
READ CONTRACT
============================================================
- resolve_alias(cluster) never fails on a missing mapping: a
  cluster without an alias is its own alias.
- resolve_cluster_name(alias) also accepts a cluster name that has
  an alias row, and raises RecordNotFoundError otherwise.
- Overrides are stored but NOT applied to either lookup. Consumers
  that want pinned names read read_override() and decide.
- Reads are not transactional; last write wins.

============================================================
WRITE CONTRACT
============================================================
Every mutation runs through Database.execute_write_func(), which
retries lock contention. Errors are logged and re-raised.

============================================================
"""

import logging
from typing import List, Optional

from core.clock import ClockProtocol, SystemClock
from cluster_alias.config import ClusterAliasConfig
from cluster_alias.repository import (
    ClusterAliasOverrideRepository,
    ClusterAliasRepository,
    DiscoveryFactRepository,
)
from cluster_alias.sync import (
    order_suggestions,
    resolve_suggestions,
    self_alias_candidates,
)
from cluster_alias.types import AliasMapping, AliasOverride, SyncReport
from storage.database import Database
from storage.repositories.exceptions import (
    RecordNotFoundError,
    RepositoryException,
    ValidationError,
)

logger = logging.getLogger(__name__)

DIRECTORY_NAME = "ClusterAliasDirectory"


class ClusterAliasDirectory:
    """
    Alias directory over the shared relational store.
    """

    def __init__(
        self,
        database: Database,
        config: Optional[ClusterAliasConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        """
        Initialize the directory.

        Args:
            database: Store gateway (sessions and retried writes)
            config: Directory configuration
            clock: Time source for registration timestamps
        """
        self._database = database
        self._config = config or ClusterAliasConfig()
        self._clock = clock or SystemClock()

    @property
    def config(self) -> ClusterAliasConfig:
        return self._config

    # =========================================================
    # READS
    # =========================================================

    def resolve_cluster_name(self, alias: str) -> str:
        """
        Get the cluster an alias points to.

        Args:
            alias: Alias, or a cluster name known to the alias map

        Returns:
            Cluster name

        Raises:
            RecordNotFoundError: Neither an alias nor a cluster matches
        """
        with self._database.session() as session:
            cluster_name = ClusterAliasRepository(session).get_cluster_name_by_alias(alias)
        if not cluster_name:
            raise RecordNotFoundError(
                repository_name=DIRECTORY_NAME,
                record_id=alias,
                id_field="alias",
            )
        return cluster_name

    def resolve_alias(self, cluster_name: str) -> str:
        """
        Get the alias of a cluster.

        Returns:
            Registered alias, or the cluster name itself when none
        """
        with self._database.session() as session:
            alias = ClusterAliasRepository(session).get_alias_by_cluster_name(cluster_name)
        return alias or cluster_name

    def read_override(self, cluster_name: str) -> Optional[str]:
        """Get the operator-pinned alias of a cluster, if any."""
        with self._database.session() as session:
            return ClusterAliasOverrideRepository(session).get_override(cluster_name)

    def list_aliases(self) -> List[AliasMapping]:
        with self._database.session() as session:
            return ClusterAliasRepository(session).list_aliases()

    def list_overrides(self) -> List[AliasOverride]:
        with self._database.session() as session:
            return ClusterAliasOverrideRepository(session).list_overrides()

    # =========================================================
    # WRITES
    # =========================================================

    def set_alias(self, cluster_name: str, alias: str) -> None:
        """
        Register the alias of a cluster, replacing any previous one.

        Idempotent. Does not check whether another cluster already
        uses the same alias.
        """
        self._require("set_alias", cluster_name=cluster_name, alias=alias)
        registered_at = self._clock.now()

        def write_alias(session):
            ClusterAliasRepository(session).upsert_alias(cluster_name, alias, registered_at)

        self._write("set_alias", write_alias)
        logger.info(f"Cluster alias set: {cluster_name} -> {alias}")

    def set_override(self, cluster_name: str, alias: str) -> None:
        """
        Pin the alias of a cluster.

        Stored apart from the alias map; synchronization never touches it.
        """
        self._require("set_override", cluster_name=cluster_name, alias=alias)

        def write_override(session):
            ClusterAliasOverrideRepository(session).upsert_override(cluster_name, alias)

        self._write("set_override", write_override)
        logger.info(f"Cluster alias override set: {cluster_name} -> {alias}")

    def synchronize(self) -> SyncReport:
        """
        Rebuild the alias map from discovery facts.

        Two transactional passes:
        1. Apply every eligible suggested alias in priority order;
           per cluster the last one applied stays.
        2. Give clusters where no instance suggests an alias a
           self-alias.

        A failure in pass 1 aborts before pass 2. Nothing is retried
        here beyond write contention; the next run starts over.

        Returns:
            SyncReport describing what was written

        Raises:
            RepositoryException: Either pass failed
        """
        reason = self._config.sync.lost_in_recovery_reason
        report = SyncReport(started_at=self._clock.now())

        def apply_suggestions(session):
            now = self._clock.now()
            facts = DiscoveryFactRepository(session).list_discovery_facts(reason, now)
            ordered = order_suggestions(facts)
            aliases = ClusterAliasRepository(session)
            for fact in ordered:
                aliases.upsert_alias(fact.cluster_name, fact.suggested_alias, now)
            return len(facts), len(ordered), resolve_suggestions(ordered)

        facts_read, applied, resolved = self._write("synchronize_suggestions", apply_suggestions)
        report.facts_read = facts_read
        report.suggestions_applied = applied
        report.resolved_aliases = resolved

        def apply_self_aliases(session):
            now = self._clock.now()
            facts = DiscoveryFactRepository(session).list_discovery_facts(reason, now)
            candidates = self_alias_candidates(facts)
            aliases = ClusterAliasRepository(session)
            for cluster_name in candidates:
                aliases.upsert_alias(cluster_name, cluster_name, now)
            return candidates

        report.self_aliased_clusters = self._write("synchronize_self_aliases", apply_self_aliases)
        report.finished_at = self._clock.now()

        logger.info(
            f"Cluster aliases synchronized: {report.facts_read} facts, "
            f"{report.suggestions_applied} suggestions applied, "
            f"{len(report.resolved_aliases)} clusters aliased, "
            f"{len(report.self_aliased_clusters)} self-aliased"
        )
        return report

    def rename_cluster(self, old_cluster_name: str, new_cluster_name: str) -> int:
        """
        Move aliases and overrides from one cluster name to another.

        Called by recovery after a promotion changes the cluster name.
        The two tables are updated in separate transactions and both
        are always attempted. This is best effort, not atomic: when
        only the second update fails, the first stays applied.

        Returns:
            Rows re-pointed across both tables

        Raises:
            RepositoryException: The last error encountered; an error
                from the override update is chained to one from the
                alias update
        """
        self._require(
            "rename_cluster",
            old_cluster_name=old_cluster_name,
            new_cluster_name=new_cluster_name,
        )

        renamed = 0
        error: Optional[RepositoryException] = None

        try:
            renamed += self._write(
                "rename_cluster_aliases",
                lambda session: ClusterAliasRepository(session).rename_cluster_name(
                    old_cluster_name, new_cluster_name
                ),
            )
        except RepositoryException as e:
            error = e

        try:
            renamed += self._write(
                "rename_cluster_overrides",
                lambda session: ClusterAliasOverrideRepository(session).rename_cluster_name(
                    old_cluster_name, new_cluster_name
                ),
            )
        except RepositoryException as e:
            if error is not None:
                raise e from error
            raise

        if error is not None:
            raise error

        logger.info(
            f"Cluster renamed in alias directory: {old_cluster_name} -> "
            f"{new_cluster_name} ({renamed} rows)"
        )
        return renamed

    # =========================================================
    # HELPERS
    # =========================================================

    def _write(self, operation: str, write_func):
        """Submit a write for retried execution, logging failures."""
        try:
            return self._database.execute_write_func(write_func, operation=operation)
        except RepositoryException as e:
            logger.error(f"Alias directory {operation} failed: {e}")
            raise

    def _require(self, operation: str, **values: str) -> None:
        """Reject blank identities and aliases on explicit writes."""
        for field_name, value in values.items():
            if not value or not value.strip():
                raise ValidationError(
                    repository_name=DIRECTORY_NAME,
                    operation=operation,
                    field=field_name,
                    reason="must not be blank",
                )
