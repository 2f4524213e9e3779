"""
Cluster Alias - ORM Models.

============================================================
PURPOSE
============================================================
Tables owned by the alias directory, and the discovery tables it
reads suggestions from.

============================================================
DATA LIFECYCLE ROLE
============================================================
OWNED (read/write)
- ClusterAlias: authoritative cluster name -> alias mapping,
  refreshed by every synchronization pass
- ClusterAliasOverride: operator-pinned mapping, written only
  through explicit administrative calls

EXTERNAL (read-only here, populated by discovery)
- DatabaseInstance: one row per discovered instance
- DatabaseInstanceDowntime: active downtimes per instance

Both owned tables are keyed by cluster_name; rename mutates the
key in place.

============================================================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base


class ClusterAlias(Base):
    """
    Current alias of each cluster.

    One row per cluster name. Aliases are not unique at the storage
    level; lookups by alias break ties on the lowest cluster name.
    """

    __tablename__ = "cluster_alias"

    cluster_name: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Current cluster identity"
    )

    alias: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
        comment="Stable human-facing cluster name"
    )

    last_registered: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Time of last registration (UTC)"
    )

    def __repr__(self) -> str:
        return f"<ClusterAlias {self.cluster_name} -> {self.alias}>"


class ClusterAliasOverride(Base):
    """
    Operator-pinned alias of a cluster.

    Never written by synchronization and never merged into
    ClusterAlias by the directory.
    """

    __tablename__ = "cluster_alias_override"

    cluster_name: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Current cluster identity"
    )

    alias: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Pinned alias"
    )

    def __repr__(self) -> str:
        return f"<ClusterAliasOverride {self.cluster_name} -> {self.alias}>"


class DatabaseInstance(Base):
    """
    Discovered database instance.

    Written by the discovery process. The directory only reads the
    columns used to derive a suggested alias per cluster.
    """

    __tablename__ = "database_instance"

    hostname: Mapped[str] = mapped_column(String(128), primary_key=True)

    port: Mapped[int] = mapped_column(Integer, primary_key=True)

    cluster_name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="",
        index=True,
        comment="Cluster the instance belongs to"
    )

    suggested_cluster_alias: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="",
        comment="Alias reported by the instance, empty if none"
    )

    read_only: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )

    num_replica_hosts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of replicas attached to the instance"
    )

    last_checked: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time discovery probed the instance"
    )

    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time a probe succeeded"
    )


class DatabaseInstanceDowntime(Base):
    """
    Downtime declared on an instance.

    Maintained by the downtime subsystem.
    """

    __tablename__ = "database_instance_downtime"

    hostname: Mapped[str] = mapped_column(String(128), primary_key=True)

    port: Mapped[int] = mapped_column(Integer, primary_key=True)

    downtime_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True
    )

    begin_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    end_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    owner: Mapped[str] = mapped_column(String(128), nullable=False, default="")

    reason: Mapped[str] = mapped_column(String(256), nullable=False, default="")
