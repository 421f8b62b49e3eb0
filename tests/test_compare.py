import pytest
import torch

from mvnorm.eval import CompareResult, compare_strategies
from mvnorm.eval.helpers import get_error_name, register_and_format_exception
from mvnorm.layer_config import MVNConfig


def test_without_cuda_batched_does_not_run(monkeypatch):
    monkeypatch.setattr(torch.cuda, "is_available", lambda: False)
    result = compare_strategies((2, 3, 4, 4))
    assert isinstance(result, CompareResult)
    assert result.batched_ran is False
    assert result.correctness is False
    assert "CUDA is not available" in result.metadata["error"]
    assert result.metadata["config"] == MVNConfig().to_dict()


def test_result_serializes():
    result = CompareResult(batched_ran=True, correctness=True, metadata={"shape": [1, 2]})
    dumped = result.model_dump()
    assert dumped["batched_ran"] is True
    assert dumped["speedup"] == -1.0


def test_exception_helpers():
    assert get_error_name(ValueError("x")) == "builtins.ValueError"
    metadata = register_and_format_exception("runtime_error", "e" * 300, {}, truncate=True)
    assert len(metadata["runtime_error"]) == 203


@pytest.mark.requires_cuda
@pytest.mark.parametrize("shape", [(2, 3, 16, 16), (2, 3, 2, 6), (2, 3, 5, 7)])
def test_compare_on_cuda(shape):
    result = compare_strategies(shape, MVNConfig(across_channels=True), num_correct_trials=3)
    assert result.batched_ran
    assert result.correctness, result.metadata
    assert result.metadata["correctness_trials"] == "(3 / 3)"


@pytest.mark.requires_cuda
def test_compare_measures_performance():
    result = compare_strategies((2, 4, 8, 8), num_perf_trials=3, measure_performance=True)
    assert result.correctness
    assert result.runtime > 0
    assert result.ref_runtime > 0
    assert result.runtime_stats["num_trials"] == 3
