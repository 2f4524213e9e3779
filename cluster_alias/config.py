"""
Cluster Alias - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the alias directory.

Values come from dataclass defaults, overridden by environment
variables (a .env file is honoured through python-dotenv).

============================================================
ENVIRONMENT
============================================================
CLUSTER_ALIAS_DATABASE_URL            database URL (or DATABASE_URL)
CLUSTER_ALIAS_SYNC_INTERVAL           seconds between sync passes
CLUSTER_ALIAS_LOST_IN_RECOVERY_REASON downtime reason to exclude
CLUSTER_ALIAS_LOG_LEVEL               DEBUG, INFO, ...
CLUSTER_ALIAS_LOG_FORMAT              json or text

============================================================
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from storage.database import DatabaseConfig, WriteRetryConfig

load_dotenv()


# Downtime reason set by recovery on a demoted master
DOWNTIME_LOST_IN_RECOVERY_MESSAGE = "lost-in-recovery"


# ============================================================
# SYNCHRONIZATION CONFIGURATION
# ============================================================

@dataclass
class SyncConfig:
    """
    Synchronization configuration.
    """

    interval_seconds: float = 60.0
    """Seconds between periodic synchronization passes."""

    lost_in_recovery_reason: str = DOWNTIME_LOST_IN_RECOVERY_MESSAGE
    """Instances downtimed with this reason never suggest an alias."""


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class ClusterAliasConfig:
    """
    Master configuration for the alias directory.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    """Database connection configuration."""

    sync: SyncConfig = field(default_factory=SyncConfig)
    """Synchronization configuration."""

    log_level: str = "INFO"
    """Root log level."""

    log_format: str = "text"
    """Log output format (json or text)."""

    @classmethod
    def from_env(cls) -> "ClusterAliasConfig":
        """Build configuration from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            sync=SyncConfig(
                interval_seconds=float(os.getenv("CLUSTER_ALIAS_SYNC_INTERVAL", "60")),
                lost_in_recovery_reason=os.getenv(
                    "CLUSTER_ALIAS_LOST_IN_RECOVERY_REASON",
                    DOWNTIME_LOST_IN_RECOVERY_MESSAGE,
                ),
            ),
            log_level=os.getenv("CLUSTER_ALIAS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("CLUSTER_ALIAS_LOG_FORMAT", "text"),
        )

    @classmethod
    def for_testing(cls) -> "ClusterAliasConfig":
        """In-memory SQLite, no retry delay."""
        return cls(
            database=DatabaseConfig(
                url="sqlite://",
                write_retry=WriteRetryConfig(
                    max_retries=2,
                    initial_delay_seconds=0.0,
                    max_delay_seconds=0.0,
                ),
            ),
            log_level="DEBUG",
        )


def get_default_config() -> ClusterAliasConfig:
    """Get configuration from the environment."""
    return ClusterAliasConfig.from_env()
