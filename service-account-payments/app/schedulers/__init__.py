"""
Schedulers for account payment aggregation.

Contains the single-flight cycle worker and the cache reaper timer
that hands it eviction requests.
"""

from .cycle import CycleResult, CycleWorker
from .reaper import CacheReaper

__all__ = [
    "CycleResult",
    "CycleWorker",
    "CacheReaper",
]
