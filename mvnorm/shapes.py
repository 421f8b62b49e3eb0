"""
Row grouping: reinterpret an N-d tensor as a rows x cols matrix.

For an (N, C, H, W) tensor, a 2-dim prefix gives N*C rows of H*W elements,
a 1-dim prefix gives N rows of C*H*W elements.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

import torch

from mvnorm.errors import ShapeMismatchError


def total(shape: Sequence[int], start: int = 0, end: int = None) -> int:
    """Product of shape[start:end]; 1 for an empty range."""
    return math.prod(shape[start:end])


@dataclass(frozen=True)
class RowGrouping:
    """
    Index mapping from an N-d shape to a rows x cols matrix.

    Attributes:
        shape: Original tensor shape
        split_dim: Number of leading dims that index rows
        rows: Product of the leading split_dim dims
        cols: Product of the remaining dims
    """
    shape: tuple
    split_dim: int
    rows: int
    cols: int

    @classmethod
    def from_shape(cls, shape: Sequence[int], split_dim: int) -> "RowGrouping":
        shape = tuple(int(s) for s in shape)
        if len(shape) < split_dim:
            raise ShapeMismatchError(
                f"Tensor of shape {list(shape)} has fewer than {split_dim} dims needed for row grouping"
            )
        rows = total(shape, 0, split_dim)
        cols = total(shape, split_dim)
        if rows * cols != total(shape):
            raise ShapeMismatchError(f"Shape {list(shape)} does not split into {rows} x {cols}")
        return cls(shape=shape, split_dim=split_dim, rows=rows, cols=cols)

    @property
    def numel(self) -> int:
        return self.rows * self.cols

    def is_empty(self) -> bool:
        return self.numel == 0

    def as_matrix(self, tensor: torch.Tensor) -> torch.Tensor:
        """
        View the tensor as rows x cols.

        Contiguous tensors get a true view sharing storage. Anything else is
        materialized, so only use the result of a non-contiguous tensor for reading.
        """
        if tensor.is_contiguous():
            return tensor.view(self.rows, self.cols)
        return tensor.reshape(self.rows, self.cols)

    def output_matrix(self, output: torch.Tensor) -> torch.Tensor:
        """Writable rows x cols target for output; scratch when output is not contiguous."""
        if output.is_contiguous():
            return output.view(self.rows, self.cols)
        return torch.empty((self.rows, self.cols), dtype=output.dtype, device=output.device)

    def write_back(self, output: torch.Tensor, matrix: torch.Tensor) -> None:
        """Copy the matrix from output_matrix() back into a non-contiguous output."""
        if not output.is_contiguous():
            output.copy_(matrix.view(self.shape))


def check_pairs(
    inputs: Sequence[torch.Tensor],
    outputs: Sequence[torch.Tensor],
    split_dim: int,
) -> List[RowGrouping]:
    """
    Validate every input/output pair before anything is computed.

    Returns:
        One RowGrouping per pair, in order
    """
    if len(inputs) != len(outputs):
        raise ShapeMismatchError(f"Got {len(inputs)} inputs but {len(outputs)} outputs")

    groupings = []
    for idx, (inp, out) in enumerate(zip(inputs, outputs)):
        if not inp.is_floating_point():
            raise TypeError(f"Input {idx} must be a floating point tensor, got {inp.dtype}")
        if not out.is_floating_point():
            raise TypeError(f"Output {idx} must be a floating point tensor, got {out.dtype}")
        if tuple(inp.shape) != tuple(out.shape):
            raise ShapeMismatchError(
                f"Output shape mismatch for input {idx}: expected {list(inp.shape)}, got {list(out.shape)}"
            )
        if inp.device != out.device:
            raise ShapeMismatchError(f"Input {idx} is on {inp.device} but its output is on {out.device}")
        groupings.append(RowGrouping.from_shape(inp.shape, split_dim))
    return groupings


def overlaps(a: torch.Tensor, b: torch.Tensor) -> bool:
    """True if a and b live in intersecting storage (views of one buffer count)."""
    if a.device != b.device or a.numel() == 0 or b.numel() == 0:
        return False
    a_storage = a.untyped_storage()
    b_storage = b.untyped_storage()
    a_start, b_start = a_storage.data_ptr(), b_storage.data_ptr()
    return a_start < b_start + b_storage.nbytes() and b_start < a_start + a_storage.nbytes()
