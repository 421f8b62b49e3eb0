"""
Normalization strategies, tried in priority order.
"""

from mvnorm.strategies.base import NormalizationStrategy
from mvnorm.strategies.batched import BatchedStrategy
from mvnorm.strategies.rowwise import RowwiseStrategy

__all__ = ["NormalizationStrategy", "BatchedStrategy", "RowwiseStrategy"]
