"""
Shared fixtures for the alias directory tests.

Every test gets a fresh in-memory SQLite database with the full
schema (alias tables and discovery tables) and a frozen clock.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from cluster_alias.config import ClusterAliasConfig
from cluster_alias.directory import ClusterAliasDirectory
from cluster_alias.models import DatabaseInstance, DatabaseInstanceDowntime
from core.clock import FixedClock
from storage.database import Database


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock frozen at NOW."""
    return FixedClock(NOW)


@pytest.fixture
def config():
    """In-memory database, no retry delay."""
    return ClusterAliasConfig.for_testing()


@pytest.fixture
def database(config):
    """Connected database with all tables created."""
    db = Database(config.database, sleep=lambda seconds: None)
    db.create_all()
    yield db
    db.disconnect()


@pytest.fixture
def directory(database, config, clock):
    return ClusterAliasDirectory(database, config=config, clock=clock)


@pytest.fixture
def add_instance(database):
    """
    Insert a discovered instance, optionally under downtime.

    Defaults describe a healthy instance: checked and seen at the
    same time, writable, no replicas.
    """

    def _add_instance(
        hostname: str,
        cluster_name: str,
        suggested_alias: str = "",
        read_only: bool = False,
        replicas: int = 0,
        port: int = 3306,
        last_checked: Optional[datetime] = NOW,
        last_seen: Optional[datetime] = NOW,
        downtime_reason: Optional[str] = None,
        downtime_active: bool = True,
        downtime_end: Optional[datetime] = None,
    ) -> None:
        def write(session):
            session.add(DatabaseInstance(
                hostname=hostname,
                port=port,
                cluster_name=cluster_name,
                suggested_cluster_alias=suggested_alias,
                read_only=read_only,
                num_replica_hosts=replicas,
                last_checked=last_checked,
                last_seen=last_seen,
            ))
            if downtime_reason is not None:
                session.add(DatabaseInstanceDowntime(
                    hostname=hostname,
                    port=port,
                    downtime_active=downtime_active,
                    begin_timestamp=NOW - timedelta(minutes=5),
                    end_timestamp=downtime_end or NOW + timedelta(hours=1),
                    owner="recovery",
                    reason=downtime_reason,
                ))

        database.execute_write_func(write, operation="add_instance")

    return _add_instance
