"""
Tests for the alias directory repositories.
"""

from datetime import timedelta

import pytest
from sqlalchemy.dialects import mysql, postgresql, sqlite

from cluster_alias.config import DOWNTIME_LOST_IN_RECOVERY_MESSAGE
from cluster_alias.models import ClusterAlias
from cluster_alias.repository import (
    ClusterAliasOverrideRepository,
    ClusterAliasRepository,
    DiscoveryFactRepository,
)
from storage.repositories.base import build_upsert
from tests.conftest import NOW


class TestClusterAliasRepository:
    """Tests for alias map access."""

    def test_repeated_upserts_in_one_transaction_replace(self, database):
        def write(session):
            repo = ClusterAliasRepository(session)
            repo.upsert_alias("clusterA", "first", NOW)
            repo.upsert_alias("clusterA", "second", NOW)
            repo.upsert_alias("clusterA", "third", NOW)

        database.execute_write_func(write)

        with database.session() as session:
            repo = ClusterAliasRepository(session)
            assert repo.get_alias_by_cluster_name("clusterA") == "third"
            assert [m.alias for m in repo.list_aliases()] == ["third"]

    def test_missing_rows_read_none(self, database):
        with database.session() as session:
            repo = ClusterAliasRepository(session)
            assert repo.get_alias_by_cluster_name("clusterA") is None
            assert repo.get_cluster_name_by_alias("payments") is None

    def test_rename_counts_rows(self, database):
        database.execute_write_func(
            lambda session: ClusterAliasRepository(session).upsert_alias("clusterA", "payments", NOW)
        )

        renamed = database.execute_write_func(
            lambda session: ClusterAliasRepository(session).rename_cluster_name("clusterA", "clusterB")
        )

        assert renamed == 1


class TestClusterAliasOverrideRepository:
    """Tests for override access."""

    def test_upsert_and_get(self, database):
        database.execute_write_func(
            lambda session: ClusterAliasOverrideRepository(session).upsert_override("clusterA", "pinned")
        )

        with database.session() as session:
            assert ClusterAliasOverrideRepository(session).get_override("clusterA") == "pinned"


class TestDiscoveryFactRepository:
    """Tests for reading discovery facts."""

    def read_facts(self, database, reason=DOWNTIME_LOST_IN_RECOVERY_MESSAGE):
        with database.session() as session:
            return DiscoveryFactRepository(session).list_discovery_facts(reason, NOW)

    def test_facts_are_read_in_cluster_host_port_order(self, database, add_instance):
        add_instance("h2", "clusterB", "billing")
        add_instance("h9", "clusterA", "payments", port=3307)
        add_instance("h9", "clusterA", "payments", port=3306)
        add_instance("h1", "clusterA", "")

        facts = self.read_facts(database)

        assert [(f.cluster_name, f.hostname, f.port) for f in facts] == [
            ("clusterA", "h1", 3306),
            ("clusterA", "h9", 3306),
            ("clusterA", "h9", 3307),
            ("clusterB", "h2", 3306),
        ]

    def test_fact_fields(self, database, add_instance):
        add_instance(
            "h1", "clusterA", "payments",
            read_only=True, replicas=3,
            last_checked=NOW, last_seen=NOW - timedelta(minutes=2),
        )

        fact = self.read_facts(database)[0]

        assert fact.suggested_alias == "payments"
        assert fact.read_only is True
        assert fact.replica_count == 3
        assert fact.is_seen_since_last_check is False
        assert fact.is_downtime_excluded is False

    def test_never_checked_instance(self, database, add_instance):
        add_instance("h1", "clusterA", "payments", last_checked=None, last_seen=None)

        fact = self.read_facts(database)[0]

        assert fact.last_checked is None
        assert fact.is_seen_since_last_check is False

    @pytest.mark.parametrize(
        "downtime, excluded",
        [
            (dict(downtime_reason=DOWNTIME_LOST_IN_RECOVERY_MESSAGE), True),
            (dict(downtime_reason="maintenance"), False),
            (dict(downtime_reason=DOWNTIME_LOST_IN_RECOVERY_MESSAGE, downtime_active=False), False),
            (
                dict(
                    downtime_reason=DOWNTIME_LOST_IN_RECOVERY_MESSAGE,
                    downtime_end=NOW - timedelta(seconds=1),
                ),
                False,
            ),
        ],
        ids=["lost-in-recovery", "other-reason", "inactive", "expired"],
    )
    def test_downtime_exclusion(self, database, add_instance, downtime, excluded):
        add_instance("h1", "clusterA", "payments", **downtime)
        add_instance("h2", "clusterA", "payments")

        facts = {f.hostname: f for f in self.read_facts(database)}

        assert facts["h1"].is_downtime_excluded is excluded
        assert facts["h2"].is_downtime_excluded is False


class TestBuildUpsert:
    """Tests for the per-dialect insert-or-replace statement."""

    VALUES = {"cluster_name": "clusterA", "alias": "payments", "last_registered": NOW}

    @pytest.mark.parametrize(
        "dialect_name, dialect, clause",
        [
            ("mysql", mysql.dialect(), "ON DUPLICATE KEY UPDATE"),
            ("postgresql", postgresql.dialect(), "ON CONFLICT (cluster_name) DO UPDATE SET"),
            ("sqlite", sqlite.dialect(), "ON CONFLICT (cluster_name) DO UPDATE SET"),
        ],
    )
    def test_single_statement_per_dialect(self, dialect_name, dialect, clause):
        stmt = build_upsert(ClusterAlias.__table__, dialect_name, self.VALUES, ["cluster_name"])

        sql = str(stmt.compile(dialect=dialect))

        assert sql.startswith("INSERT INTO cluster_alias ")
        assert clause in sql
        updated = sql.split(clause, 1)[1]
        assert "alias" in updated
        assert "last_registered" in updated
        assert "cluster_name" not in updated

    def test_unknown_dialect_is_rejected(self):
        with pytest.raises(ValueError):
            build_upsert(ClusterAlias.__table__, "oracle", self.VALUES, ["cluster_name"])
