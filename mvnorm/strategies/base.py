"""
Abstract base class for normalization strategies.
A strategy either produces every output of a call or reports that it could not.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import torch

from mvnorm.layer_config import MVNConfig
from mvnorm.shapes import RowGrouping


class NormalizationStrategy(ABC):
    """
    One way of computing MVN over a list of input/output pairs.
    Strategies are tried in priority order until one succeeds.
    """

    name: str = "base"

    def __init__(self, config: MVNConfig):
        self.config = config

    @abstractmethod
    def try_run(
        self,
        inputs: Sequence[torch.Tensor],
        outputs: Sequence[torch.Tensor],
        groupings: List[RowGrouping],
    ) -> bool:
        """
        Normalize every input into its output.

        Args:
            inputs: Input tensors, already validated
            outputs: Pre-allocated outputs of matching shape
            groupings: Row grouping for each pair

        Returns:
            True if every output was written, False if the caller must fall back.
            On False, nothing written to outputs may be trusted.
        """
        pass
