"""
Mean-variance normalization layer.

Normalizes each row of a tensor (per instance and channel, or per instance
across all channels) to zero mean and, optionally, unit variance:

  y = (x - mean) / (eps + std)     if normalize_variance
  y = x - mean                     otherwise

Shapes:
  - inputs[i]: (N, C, ...) - Input
  - outputs[i]: same shape as inputs[i]
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

import torch
import torch.nn as nn

from mvnorm.device import DeviceCapability, Target, default_target
from mvnorm.errors import ConfigError
from mvnorm.layer_config import LayerParams, MVNConfig
from mvnorm.settings import Settings, load_settings
from mvnorm.shapes import check_pairs, total
from mvnorm.strategies import BatchedStrategy, NormalizationStrategy, RowwiseStrategy

logger = logging.getLogger(__name__)


class MVNLayer:
    """
    MVN operator with a batched accelerator path and a row-wise fallback.
    """

    def __init__(
        self,
        params: Union[LayerParams, Mapping[str, Any], None] = None,
        capability: Optional[DeviceCapability] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            params: Layer record with normalize_variance, across_channels, eps
            capability: Accelerator capability query (built from settings if None)
            settings: Process settings (read from the environment if None)
        """
        if params is None:
            params = LayerParams()
        elif not isinstance(params, LayerParams):
            params = LayerParams.from_mapping(params)

        self.name = params.name
        self.type = params.type
        self.config = MVNConfig.from_params(params)

        settings = settings or load_settings()
        self.preferable_target = settings.preferable_target or default_target()
        self.batched_enabled = not settings.disable_batched
        self.capability = capability or DeviceCapability(settings.force_perf_check)

        self._rowwise = RowwiseStrategy(self.config)
        self._batched = BatchedStrategy(self.config)

    @classmethod
    def create(cls, params: Union[LayerParams, Mapping[str, Any]]) -> "MVNLayer":
        return cls(params)

    def set_preferable_target(self, target: Union[Target, str]) -> None:
        if not isinstance(target, str):
            raise ConfigError(f"Target must be a Target or a string, got {type(target)}")
        try:
            self.preferable_target = Target(target.lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown target {target!r}") from exc

    def select_strategies(self, inputs: Sequence[torch.Tensor]) -> List[NormalizationStrategy]:
        """
        Ordered strategies for one call. Decided once, before any row is processed.
        """
        device = inputs[0].device if inputs and inputs[0].is_cuda else None
        if self.batched_enabled and self.capability.prefers_batched(self.preferable_target, device):
            return [self._batched, self._rowwise]
        return [self._rowwise]

    def forward(
        self,
        inputs: Sequence[torch.Tensor],
        outputs: Sequence[torch.Tensor],
        internals: Optional[Sequence[torch.Tensor]] = None,
    ) -> None:
        """
        Normalize each input into the matching pre-allocated output.

        Args:
            inputs: Input tensors
            outputs: Outputs, same count and shapes as inputs
            internals: Unused scratch list, accepted for interface compatibility
        """
        groupings = check_pairs(inputs, outputs, self.config.split_dim)
        for strategy in self.select_strategies(inputs):
            if strategy.try_run(inputs, outputs, groupings):
                logger.debug(f"{self.name or 'MVN'}: {len(inputs)} tensor(s) via {strategy.name}")
                return
        # RowwiseStrategy is always last and never fails
        raise RuntimeError("No normalization strategy succeeded")

    def forward_fallback(
        self,
        inputs: Sequence[torch.Tensor],
        outputs: Sequence[torch.Tensor],
        internals: Optional[Sequence[torch.Tensor]] = None,
    ) -> None:
        """Row-wise path only, regardless of target."""
        groupings = check_pairs(inputs, outputs, self.config.split_dim)
        self._rowwise.try_run(inputs, outputs, groupings)

    def __call__(self, *inputs: torch.Tensor) -> List[torch.Tensor]:
        outputs = [torch.empty_like(x) for x in inputs]
        self.forward(list(inputs), outputs)
        return outputs

    def get_flops(self, inputs: Sequence[Sequence[int]], outputs: Sequence[Sequence[int]]) -> int:
        """
        Estimated operation count: 6 per element, plus 3 per row when
        variance is normalized.
        """
        flops = 0
        for shape in inputs:
            flops += 6 * total(shape)
            if self.config.normalize_variance:
                flops += 3 * total(shape, 0, self.config.split_dim)
        return flops


class MeanVarianceNorm(nn.Module):
    """
    torch module wrapper around MVNLayer for use inside a model.
    """

    def __init__(self, normalize_variance: bool = True, across_channels: bool = False, eps: float = 1e-9):
        super().__init__()
        self.layer = MVNLayer(
            LayerParams(
                type="MVN",
                params={
                    "normalize_variance": normalize_variance,
                    "across_channels": across_channels,
                    "eps": float(eps),
                },
            )
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        y = torch.empty_like(x)
        self.layer.forward([x], [y])
        return y

    def extra_repr(self) -> str:
        c = self.layer.config
        return f"normalize_variance={c.normalize_variance}, across_channels={c.across_channels}, eps={c.eps}"
