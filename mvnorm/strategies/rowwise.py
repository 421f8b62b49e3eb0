"""
Row-wise strategy: the reference MVN path.
Works on any device and dtype; never reports failure.
"""

from typing import List, Sequence

import torch

from mvnorm.shapes import RowGrouping
from mvnorm.strategies.base import NormalizationStrategy


def stats_dtype(device: torch.device) -> torch.dtype:
    """Widest float the device can reduce in; MPS has no float64."""
    if device.type == "mps":
        return torch.float32
    return torch.float64


class RowwiseStrategy(NormalizationStrategy):
    """
    Normalizes one row at a time. Rows are independent, so the loop order
    carries no meaning.
    """

    name = "rowwise"

    def normalize_row(self, inp_row: torch.Tensor, out_row: torch.Tensor) -> None:
        # Statistics in float64 where available, like a meanStdDev reduction
        row = inp_row.to(stats_dtype(inp_row.device))
        if self.config.normalize_variance:
            dev, mean = torch.std_mean(row, correction=0)
            alpha = 1.0 / (self.config.eps + dev)
        else:
            mean = row.mean()
            alpha = 1.0
        out_row.copy_((row - mean) * alpha)

    def try_run(
        self,
        inputs: Sequence[torch.Tensor],
        outputs: Sequence[torch.Tensor],
        groupings: List[RowGrouping],
    ) -> bool:
        for inp, out, grouping in zip(inputs, outputs, groupings):
            if grouping.is_empty():
                continue
            inp_mat = grouping.as_matrix(inp)
            out_mat = grouping.output_matrix(out)
            for i in range(grouping.rows):
                self.normalize_row(inp_mat[i], out_mat[i])
            grouping.write_back(out, out_mat)
        return True
