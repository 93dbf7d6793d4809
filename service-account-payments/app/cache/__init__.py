"""
In-memory aggregate cache.

Holds the running daily bucket of every account referenced recently,
loading from the store on first reference.
"""

from .buckets import BucketCache

__all__ = [
    "BucketCache",
]
