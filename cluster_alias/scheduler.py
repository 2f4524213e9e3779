"""
Cluster Alias - Periodic Synchronization.

Runs ClusterAliasDirectory.synchronize() on a fixed interval. A
failed cycle is logged and the loop moves on; the next tick runs a
full pass again.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from cluster_alias.directory import ClusterAliasDirectory
from cluster_alias.types import SyncReport
from storage.repositories.exceptions import RepositoryException

logger = logging.getLogger(__name__)


@dataclass
class SyncLoopResult:
    """Counters for a finished sync loop."""

    cycles: int = 0
    failures: int = 0
    reports: List[SyncReport] = field(default_factory=list)


def run_sync_loop(
    directory: ClusterAliasDirectory,
    interval_seconds: float,
    max_cycles: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncLoopResult:
    """
    Synchronize aliases every interval.

    Args:
        directory: Directory to synchronize
        interval_seconds: Pause between the end of one cycle and the next
        max_cycles: Stop after this many cycles (None runs forever)
        sleep: Sleep function

    Returns:
        SyncLoopResult once max_cycles is reached
    """
    result = SyncLoopResult()

    while max_cycles is None or result.cycles < max_cycles:
        result.cycles += 1
        try:
            result.reports.append(directory.synchronize())
        except RepositoryException as e:
            result.failures += 1
            logger.error(
                f"Cluster alias sync cycle {result.cycles} failed: {e}. "
                f"Next attempt in {interval_seconds:.0f}s"
            )

        if max_cycles is not None and result.cycles >= max_cycles:
            break
        sleep(interval_seconds)

    return result
