"""
Validate the batched strategy against the row-wise reference
"""

from typing import Optional, Sequence, Union

import torch
from pydantic import BaseModel

from mvnorm.eval.helpers import (
    get_error_name,
    get_timing_stats,
    register_and_format_exception,
    set_seed,
    time_execution_with_cuda_event,
)
from mvnorm.layer_config import MVNConfig
from mvnorm.shapes import check_pairs
from mvnorm.strategies import BatchedStrategy, RowwiseStrategy


class CompareResult(BaseModel):
    """
    Outcome of running both strategies on the same inputs
    """
    batched_ran: bool = False
    correctness: bool = False
    metadata: dict = {}
    runtime: float = -1.0  # in ms, batched strategy runtime
    runtime_stats: dict = {}
    ref_runtime: float = -1.0  # in ms, row-wise strategy runtime
    ref_runtime_stats: dict = {}
    speedup: float = -1.0  # ref_runtime / runtime


def _run(strategy, x: torch.Tensor, out: torch.Tensor, split_dim: int) -> bool:
    groupings = check_pairs([x], [out], split_dim)
    return strategy.try_run([x], [out], groupings)


def compare_strategies(
    shape: Sequence[int],
    config: Optional[MVNConfig] = None,
    seed_num: int = 42,
    num_correct_trials: int = 1,
    num_perf_trials: int = 10,
    atol: float = 1e-4,
    verbose: bool = False,
    measure_performance: bool = False,
    device: Union[torch.device, int, None] = None,
) -> CompareResult:
    """
    Run the batched strategy against the row-wise reference

    num_correct_trials: number of random inputs; correctness passes only if all trials pass
    num_perf_trials: number of timed runs of each strategy
    atol: largest accepted absolute difference between the two outputs
    """
    config = config or MVNConfig()
    metadata = {"shape": list(shape), "config": config.to_dict()}

    if not torch.cuda.is_available():
        metadata["error"] = "CUDA is not available, cannot run batched strategy"
        return CompareResult(metadata=metadata)

    if device is None:
        device = torch.device("cuda", torch.cuda.current_device())
    elif isinstance(device, int):
        device = torch.device("cuda", device)
    metadata["hardware"] = torch.cuda.get_device_name(device=device)
    metadata["device"] = str(device)

    reference = RowwiseStrategy(config)
    batched = BatchedStrategy(config)
    split_dim = config.split_dim

    # Generate num_correct_trials seeds deterministically from the initial seed
    set_seed(seed_num)
    trial_seeds = [torch.randint(0, 2**31 - 1, (1,)).item() for _ in range(num_correct_trials)]

    pass_count = 0
    with torch.no_grad():
        for trial, trial_seed in enumerate(trial_seeds):
            set_seed(trial_seed)
            x = torch.randn(*shape, dtype=torch.float32, device=device)
            ref_out = torch.empty_like(x)
            new_out = torch.empty_like(x)

            _run(reference, x, ref_out, split_dim)
            try:
                ran = _run(batched, x, new_out, split_dim)
            except Exception as e:
                metadata = register_and_format_exception("runtime_error", e, metadata, truncate=True)
                metadata["runtime_error_name"] = get_error_name(e)
                return CompareResult(metadata=metadata)

            if not ran:
                metadata["batched_error"] = "Batched strategy reported failure"
                if verbose:
                    print(f"[FAIL] trial {trial}: batched strategy did not run")
                return CompareResult(metadata=metadata)

            max_diff = torch.max(torch.abs(ref_out - new_out)).item() if x.numel() else 0.0
            avg_diff = torch.mean(torch.abs(ref_out - new_out)).item() if x.numel() else 0.0
            metadata.setdefault("max_difference", []).append(f"{max_diff:.6g}")
            metadata.setdefault("avg_difference", []).append(f"{avg_diff:.6g}")
            if torch.allclose(ref_out, new_out, atol=atol, rtol=0.0):
                pass_count += 1
                if verbose:
                    print(f"[PASS] trial {trial}: batched matches row-wise (max diff {max_diff:.3g})")
            else:
                metadata["correctness_issue"] = "Output mismatch"
                if verbose:
                    print(f"[FAIL] trial {trial}: max diff {max_diff:.3g} exceeds {atol}")

    metadata["correctness_trials"] = f"({pass_count} / {num_correct_trials})"
    result = CompareResult(
        batched_ran=True,
        correctness=pass_count == num_correct_trials,
        metadata=metadata,
    )

    if measure_performance and result.correctness:
        try:
            set_seed(seed_num)
            x = torch.randn(*shape, dtype=torch.float32, device=device)
            out = torch.empty_like(x)

            ref_times = time_execution_with_cuda_event(
                _run, reference, x, out, split_dim,
                num_trials=num_perf_trials, verbose=verbose, device=device,
            )
            times = time_execution_with_cuda_event(
                _run, batched, x, out, split_dim,
                num_trials=num_perf_trials, verbose=verbose, device=device,
            )
            result.ref_runtime_stats = get_timing_stats(ref_times, device=device)
            result.runtime_stats = get_timing_stats(times, device=device)
            result.ref_runtime = result.ref_runtime_stats["mean"]
            result.runtime = result.runtime_stats["mean"]
            if result.runtime > 0:
                result.speedup = result.ref_runtime / result.runtime
        except Exception as e:
            if verbose:
                print(f"[Eval] Error in Measuring Performance: {e}")
            result.metadata["error_during_performance"] = str(e)

    return result
