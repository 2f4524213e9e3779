"""
Cluster Alias Directory.

============================================================
PURPOSE
============================================================
Keeps a durable mapping between stable, human-facing cluster
aliases and volatile cluster names. Cluster names change when
recovery promotes a new primary; aliases let dashboards,
automation and alerting keep referring to the same logical
cluster.

============================================================
CAPABILITIES
============================================================
1. Resolve alias -> cluster and cluster -> alias
2. Synchronize aliases from discovery facts, with a
   deterministic choice when instances disagree
3. Store operator-pinned overrides apart from synchronization
4. Re-point aliases when a cluster is renamed

============================================================
USAGE EXAMPLE
============================================================

```python
from cluster_alias import ClusterAliasDirectory, get_default_config
from storage.database import Database

config = get_default_config()
database = Database(config.database)
directory = ClusterAliasDirectory(database, config=config)

directory.synchronize()
directory.resolve_cluster_name("payments")        # "db-a-1:3306"
directory.rename_cluster("db-a-1:3306", "db-a-2:3306")
directory.resolve_alias("db-a-2:3306")            # "payments"
```

============================================================
"""

from cluster_alias.config import (
    DOWNTIME_LOST_IN_RECOVERY_MESSAGE,
    ClusterAliasConfig,
    SyncConfig,
    get_default_config,
)
from cluster_alias.directory import ClusterAliasDirectory
from cluster_alias.scheduler import SyncLoopResult, run_sync_loop
from cluster_alias.types import (
    AliasMapping,
    AliasOverride,
    DiscoveryFact,
    SyncReport,
)

__version__ = "1.0.0"

__all__ = [
    "DOWNTIME_LOST_IN_RECOVERY_MESSAGE",
    "ClusterAliasConfig",
    "SyncConfig",
    "get_default_config",
    "ClusterAliasDirectory",
    "SyncLoopResult",
    "run_sync_loop",
    "AliasMapping",
    "AliasOverride",
    "DiscoveryFact",
    "SyncReport",
]
