"""
Triton kernels backing the batched MVN strategy.
"""

from mvnorm.kernels.mvn_kernels import launch_calc_mean, launch_mvn, vector_width

__all__ = ["launch_calc_mean", "launch_mvn", "vector_width"]
