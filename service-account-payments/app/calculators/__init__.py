"""
Calculators for account payment aggregation.

Includes canonical-currency rate normalization and the adjuster that
folds normalized payments into daily account buckets.
"""

from .rates import RateNormalizer
from .adjuster import BucketAdjuster

__all__ = [
    "RateNormalizer",
    "BucketAdjuster",
]
