import pytest
import torch

from mvnorm.device import DeviceCapability, Target
from mvnorm.layer import MVNLayer
from mvnorm.settings import Settings


def pytest_collection_modifyitems(config, items):
    if torch.cuda.is_available():
        return
    skip_cuda = pytest.mark.skip(reason="CUDA is not available")
    for item in items:
        if "requires_cuda" in item.keywords:
            item.add_marker(skip_cuda)


class AlwaysFavorable(DeviceCapability):
    """Capability stub whose vendor heuristic always passes."""

    def performance_check(self, device=None) -> bool:
        return True


@pytest.fixture
def cpu_settings():
    return Settings(preferable_target=Target.CPU)


@pytest.fixture
def cuda_settings():
    return Settings(preferable_target=Target.CUDA)


@pytest.fixture
def make_layer(cpu_settings):
    def _make(settings=None, capability=None, **params):
        return MVNLayer(params, capability=capability, settings=settings or cpu_settings)
    return _make


@pytest.fixture
def nchw():
    torch.manual_seed(0)
    return torch.randn(2, 3, 4, 5) * 3.0 + 1.5


@pytest.fixture
def favorable_capability():
    return AlwaysFavorable()
