"""
Configuration file for pytest.

Shared fixtures for the graystudio test suite. Every test runs against the
built-in config defaults so a user config file cannot change results.
"""

import pathlib
import tempfile

import numpy as np
import pytest

from graystudio.core.pixel_buffer import PixelBuffer
from graystudio.utils import config


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path_factory):
    """Point the config loader at a file that does not exist."""
    missing = tmp_path_factory.mktemp("cfg") / "config.toml"
    monkeypatch.setenv("GRAYSTUDIO_CONFIG_FILE", str(missing))
    config.load_config.cache_clear()
    yield
    config.load_config.cache_clear()


@pytest.fixture(scope="function")
def temp_dir():
    """
    Temporary directory for a test function, removed afterwards.

    Yields:
        pathlib.Path: The path to the created temporary directory.
    """
    with tempfile.TemporaryDirectory(prefix="graystudio_test_") as tmpdir:
        yield pathlib.Path(tmpdir)


def make_buffer(rows):
    """Build a PixelBuffer from nested [[(r, g, b, a), ...], ...] rows."""
    return PixelBuffer(np.array(rows, dtype=np.uint8))


@pytest.fixture
def gradient_buffer():
    """4x3 buffer with distinct, partly transparent pixels."""
    h, w = 3, 4
    arr = np.zeros((h, w, 4), dtype=np.uint8)
    for y in range(h):
        for x in range(w):
            arr[y, x] = (x * 60, y * 100, 255 - x * 40, 255 - y * 50)
    return PixelBuffer(arr)


@pytest.fixture
def random_buffer():
    rng = np.random.default_rng(1234)
    return PixelBuffer(rng.integers(0, 256, size=(7, 9, 4), dtype=np.uint8))
