import numpy as np
import pytest

import stridegrad as sg
from stridegrad.autograd import autograd


def pytest_addoption(parser):
    parser.addoption(
        "--device",
        action="store",
        default="native:0",
        help="Device name the array tests allocate on",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "double_backprop: tests that differentiate through backward closures",
    )


@pytest.fixture
def device(request):
    return sg.get_device(request.config.getoption("--device"))


@pytest.fixture(autouse=True)
def fresh_tape():
    """Give each test an empty gradient tape."""
    autograd.tape.clear()
    yield
    autograd.tape.clear()


@pytest.fixture
def a34(device):
    """``(3, 4)`` float32 array holding ``0..11`` in row-major order."""
    return sg.array(np.arange(12, dtype=np.float32).reshape(3, 4), device=device)
