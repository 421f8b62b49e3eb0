import torch
import triton
import triton.language as tl

# Vector widths tried for tiling a row, widest first
VECTOR_WIDTHS = (8, 4, 1)

# Vectors handled by one program instance
TILES_PER_PROGRAM = 128


def vector_width(cols: int) -> int:
    """Widest width in VECTOR_WIDTHS that evenly divides cols."""
    for width in VECTOR_WIDTHS:
        if cols % width == 0:
            return width
    return 1


@triton.jit
def calc_mean_kernel(
    x_ptr,        # *f32, [rows, cols] contiguous
    mean_ptr,     # *f32, [rows]
    tmp_ptr,      # *f32, [rows, cols] squared deviation out
    cols,
    n_vectors,    # rows * cols // NUM
    NUM: tl.constexpr,
    TILES: tl.constexpr,
):
    pid = tl.program_id(0)
    # int64 so tensors past 2**31 elements stay addressable
    vec = pid.to(tl.int64) * TILES + tl.arange(0, TILES)
    vec_mask = vec < n_vectors

    # NUM divides cols, so a vector never straddles two rows
    lanes = tl.arange(0, NUM)
    offsets = vec[:, None] * NUM + lanes[None, :]
    mask = vec_mask[:, None] & (lanes[None, :] < NUM)
    row = offsets // cols

    x = tl.load(x_ptr + offsets, mask=mask, other=0.0)
    mean = tl.load(mean_ptr + row, mask=mask, other=0.0)
    diff = x - mean
    tl.store(tmp_ptr + offsets, diff * diff, mask=mask)


@triton.jit
def mvn_kernel(
    x_ptr,        # *f32, [rows, cols] contiguous
    cols,
    eps,
    mean_ptr,     # *f32, [rows]
    dev_ptr,      # *f32, [rows] mean squared deviation (unused without NORM_VARIANCE)
    out_ptr,      # *f32, [rows, cols] contiguous
    n_vectors,
    NUM: tl.constexpr,
    NORM_VARIANCE: tl.constexpr,
    TILES: tl.constexpr,
):
    pid = tl.program_id(0)
    # int64 so tensors past 2**31 elements stay addressable
    vec = pid.to(tl.int64) * TILES + tl.arange(0, TILES)
    vec_mask = vec < n_vectors

    lanes = tl.arange(0, NUM)
    offsets = vec[:, None] * NUM + lanes[None, :]
    mask = vec_mask[:, None] & (lanes[None, :] < NUM)
    row = offsets // cols

    x = tl.load(x_ptr + offsets, mask=mask, other=0.0)
    mean = tl.load(mean_ptr + row, mask=mask, other=0.0)
    if NORM_VARIANCE:
        dev = tl.load(dev_ptr + row, mask=mask, other=1.0)
        alpha = 1.0 / (eps + tl.sqrt(dev))
        y = (x - mean) * alpha
    else:
        y = x - mean
    tl.store(out_ptr + offsets, y, mask=mask)


def _grid(n_vectors: int):
    return (triton.cdiv(n_vectors, TILES_PER_PROGRAM),)


def launch_calc_mean(x: torch.Tensor, mean: torch.Tensor, tmp: torch.Tensor, num: int) -> None:
    rows, cols = x.shape
    n_vectors = rows * cols // num
    calc_mean_kernel[_grid(n_vectors)](
        x, mean, tmp, cols, n_vectors,
        NUM=num, TILES=TILES_PER_PROGRAM,
    )


def launch_mvn(
    x: torch.Tensor,
    eps: float,
    mean: torch.Tensor,
    dev: torch.Tensor,
    out: torch.Tensor,
    num: int,
    norm_variance: bool,
) -> None:
    rows, cols = x.shape
    n_vectors = rows * cols // num
    mvn_kernel[_grid(n_vectors)](
        x, cols, eps, mean, dev, out, n_vectors,
        NUM=num, NORM_VARIANCE=norm_variance, TILES=TILES_PER_PROGRAM,
    )
