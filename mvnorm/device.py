"""
Execution targets and the accelerator capability query used to decide
whether the batched strategy is worth attempting.
"""

import logging
from enum import Enum
from typing import Optional

import torch

logger = logging.getLogger(__name__)

# Oldest NVIDIA architecture (Volta) the batched kernels are tuned for
MIN_NVIDIA_CAPABILITY = (7, 0)


class Target(str, Enum):
    CPU = "cpu"
    CUDA = "cuda"


def default_target() -> Target:
    return Target.CUDA if torch.cuda.is_available() else Target.CPU


class DeviceCapability:
    """
    Answers "should the batched path run on this device?".

    The decision is made once per forward call, before any row is touched.
    """

    def __init__(self, force_perf_check: Optional[bool] = None):
        """
        Args:
            force_perf_check: If set, replaces the vendor heuristic outright
        """
        self.force_perf_check = force_perf_check

    def is_available(self) -> bool:
        return torch.cuda.is_available()

    def device_name(self, device: Optional[torch.device] = None) -> str:
        if not self.is_available():
            return "cpu"
        return torch.cuda.get_device_name(device=device)

    def performance_check(self, device: Optional[torch.device] = None) -> bool:
        """
        Vendor heuristic: ROCm builds and NVIDIA parts from Volta onward.

        Args:
            device: CUDA device to query (current device if None)

        Returns:
            True if the batched path is expected to beat the row-wise path
        """
        if not self.is_available():
            return False
        if self.force_perf_check is not None:
            return self.force_perf_check
        if getattr(torch.version, "hip", None):
            return True
        capability = torch.cuda.get_device_capability(device)
        if capability < MIN_NVIDIA_CAPABILITY:
            logger.debug(f"Compute capability {capability} below {MIN_NVIDIA_CAPABILITY}, skipping batched path")
            return False
        return True

    def prefers_batched(self, target: Target, device: Optional[torch.device] = None) -> bool:
        return target == Target.CUDA and self.performance_check(device)
