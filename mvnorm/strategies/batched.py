"""
Batched strategy: per-row statistics as GEMV reductions over the whole
rows x cols matrix, elementwise work in Triton kernels.
"""

import logging
from typing import List, Sequence

import torch

from mvnorm.kernels import launch_calc_mean, launch_mvn, vector_width
from mvnorm.shapes import RowGrouping, overlaps
from mvnorm.strategies.base import NormalizationStrategy

logger = logging.getLogger(__name__)


class BatchedStrategy(NormalizationStrategy):
    """
    Accelerator path. Any failure aborts the whole call; the caller reruns
    it with the row-wise strategy.
    """

    name = "batched"

    def supports(self, tensor: torch.Tensor) -> bool:
        return tensor.is_cuda and tensor.dtype == torch.float32

    def _normalize(self, inp_mat: torch.Tensor, out_mat: torch.Tensor) -> None:
        rows, cols = inp_mat.shape
        device = inp_mat.device
        alpha = 1.0 / cols

        ones = torch.ones(cols, dtype=torch.float32, device=device)
        zeros = torch.zeros(rows, dtype=torch.float32, device=device)
        mean = torch.addmv(zeros, inp_mat, ones, beta=0.0, alpha=alpha)

        num = vector_width(cols)
        if self.config.normalize_variance:
            tmp = torch.empty((rows, cols), dtype=torch.float32, device=device)
            launch_calc_mean(inp_mat, mean, tmp, num)
            dev = torch.addmv(zeros, tmp, ones, beta=0.0, alpha=alpha)
        else:
            # Never read by the kernel without NORM_VARIANCE
            dev = mean

        launch_mvn(
            inp_mat,
            float(self.config.eps),
            mean,
            dev,
            out_mat,
            num,
            self.config.normalize_variance,
        )

    def _synchronize(self, device: torch.device) -> None:
        # Surface asynchronous launch errors inside the attempt
        if device.type == "cuda":
            torch.cuda.synchronize(device=device)

    def try_run(
        self,
        inputs: Sequence[torch.Tensor],
        outputs: Sequence[torch.Tensor],
        groupings: List[RowGrouping],
    ) -> bool:
        for inp, out in zip(inputs, outputs):
            if not (self.supports(inp) and self.supports(out)):
                logger.debug(f"Batched path needs float32 CUDA tensors, got {inp.dtype} on {inp.device}")
                return False

        # An output aliasing any input must not change until every tensor succeeded,
        # otherwise the row-wise rerun would see half-normalized inputs
        staged = any(overlaps(inp, out) for inp in inputs for out in outputs)
        if staged:
            targets = [torch.empty(out.shape, dtype=out.dtype, device=out.device) for out in outputs]
        else:
            targets = list(outputs)

        try:
            for inp, target, grouping in zip(inputs, targets, groupings):
                if grouping.is_empty():
                    continue
                # Kernels index flat memory, so the input must really be contiguous
                inp_mat = grouping.as_matrix(inp).contiguous()
                out_mat = grouping.output_matrix(target)
                self._normalize(inp_mat, out_mat)
                grouping.write_back(target, out_mat)
                self._synchronize(target.device)
        except Exception as exc:
            logger.warning(f"Batched MVN failed: {exc}, falling back to row-wise path")
            return False

        if staged:
            for out, target in zip(outputs, targets):
                out.copy_(target)
        return True
