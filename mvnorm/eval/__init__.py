"""
Strategy comparison harness.
"""

from mvnorm.eval.compare import CompareResult, compare_strategies

__all__ = ["CompareResult", "compare_strategies"]
