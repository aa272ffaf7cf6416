"""
Shared fixtures for unit tests.
"""

import threading
import pytest
import numpy as np

from splinalign.interval import Interval


@pytest.fixture
def rng():
    """Reproducible random generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def smooth_image_64x48():
    """A smooth 64x48 float32 test pattern with some structure."""
    y, x = np.mgrid[0:48, 0:64].astype(np.float32)
    img = (np.sin(x / 7.0) * np.cos(y / 5.0)
           + 0.01 * (x - 32) * (y - 24) / 100)
    return img.astype(np.float32)


@pytest.fixture
def random_image_100x80(rng):
    """A random 100 wide, 80 high float32 image."""
    return rng.random((80, 100)).astype(np.float32)


@pytest.fixture
def source_interval_100():
    """Source interval of a 100x100 image without offset."""
    return Interval(100, 100)


@pytest.fixture
def cancel_event():
    """A fresh cancellation token."""
    return threading.Event()


class Recorder:
    """Progress callback that remembers what it was told."""
    def __init__(self):
        self.calls = []
        self.lock = threading.Lock()

    def __call__(self, current, total, message):
        with self.lock:
            self.calls.append((current, total, message))

    def messages(self):
        return {m for _, _, m in self.calls}


@pytest.fixture
def recorder():
    """A progress callback that records all reports."""
    return Recorder()
