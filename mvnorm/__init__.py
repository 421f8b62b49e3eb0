"""
Mean-variance normalization operator with a batched Triton path and a
row-wise reference path.
"""

from mvnorm.device import DeviceCapability, Target
from mvnorm.errors import ConfigError, ShapeMismatchError
from mvnorm.layer import MeanVarianceNorm, MVNLayer
from mvnorm.layer_config import LayerParams, MVNConfig, load_layer_params
from mvnorm.shapes import RowGrouping

__all__ = [
    "ConfigError",
    "DeviceCapability",
    "LayerParams",
    "MVNConfig",
    "MVNLayer",
    "MeanVarianceNorm",
    "RowGrouping",
    "ShapeMismatchError",
    "Target",
    "load_layer_params",
]
