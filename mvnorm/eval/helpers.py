"""
Helpers shared by the strategy comparison harness.
"""

import random
from typing import Callable, Dict, List, Optional

import torch


def set_seed(seed: int):
    random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


def get_error_name(e: Exception) -> str:
    return f"{e.__class__.__module__}.{e.__class__.__name__}"


def register_and_format_exception(
    exception_type: str,
    exception_msg,
    metadata: dict,
    truncate: bool = False,
    max_length: int = 200,
) -> dict:
    """Record an exception message in metadata, optionally truncated."""
    message = str(exception_msg)
    if truncate and len(message) > max_length:
        message = message[:max_length] + "..."
    metadata[exception_type] = message
    return metadata


def time_execution_with_cuda_event(
    fn: Callable,
    *args,
    num_warmup: int = 3,
    num_trials: int = 10,
    verbose: bool = False,
    device: Optional[torch.device] = None,
) -> List[float]:
    """
    Time fn(*args) with CUDA events.

    Returns:
        Elapsed time of each trial in milliseconds
    """
    for _ in range(num_warmup):
        fn(*args)
    torch.cuda.synchronize(device=device)

    elapsed_times = []
    for trial in range(num_trials):
        start_event = torch.cuda.Event(enable_timing=True)
        end_event = torch.cuda.Event(enable_timing=True)
        start_event.record()
        fn(*args)
        end_event.record()
        torch.cuda.synchronize(device=device)
        elapsed = start_event.elapsed_time(end_event)
        if verbose:
            print(f"Trial {trial + 1}: {elapsed:.3g} ms")
        elapsed_times.append(elapsed)
    return elapsed_times


def get_timing_stats(elapsed_times: List[float], device: Optional[torch.device] = None) -> Dict:
    times = torch.tensor(elapsed_times, dtype=torch.float64)
    stats = {
        "mean": float(f"{times.mean().item():.3g}"),
        "std": float(f"{times.std(correction=0).item():.3g}"),
        "min": float(f"{times.min().item():.3g}"),
        "max": float(f"{times.max().item():.3g}"),
        "num_trials": len(elapsed_times),
    }
    if device is not None:
        stats["hardware"] = torch.cuda.get_device_name(device=device)
        stats["device"] = str(device)
    return stats
