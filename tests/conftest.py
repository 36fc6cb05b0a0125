import numpy as np
import pytest

from roadweave.config.schema import GenerationConfig
from roadweave.pipeline import GenerationRequest


@pytest.fixture
def rng(): return np.random.default_rng(0)

@pytest.fixture
def cfg(): return GenerationConfig(seed=7)

@pytest.fixture
def small_request():
    return GenerationRequest(world_size=(800.0, 800.0), park_size=(120.0, 80.0))

@pytest.fixture
def drain():
    """Run a stage generator to completion and hand back its return value."""
    def _fn(gen):
        while True:
            try:
                next(gen)
            except StopIteration as stop:
                return stop.value
    return _fn


def assert_inside(rect, pt, tol=1e-6):
    assert rect.x_min - tol <= pt[0] <= rect.x_max + tol
    assert rect.y_min - tol <= pt[1] <= rect.y_max + tol
