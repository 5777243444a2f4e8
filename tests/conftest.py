"""
Shared fixtures for cipher tests.
"""
import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def black_grid():
    """2x2 all-black normalized pixel grid."""
    return np.zeros((2, 2, 3), dtype=np.float64)


@pytest.fixture
def random_levels():
    """Random 8-bit RGB levels, 12 rows by 17 columns."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, (12, 17, 3), dtype=np.uint8)


@pytest.fixture
def random_grid(random_levels):
    return random_levels.astype(np.float64) / 255


@pytest.fixture
def image_file(tmp_path, random_levels):
    """PNG on disk holding random_levels."""
    path = tmp_path / "plain.png"
    Image.fromarray(random_levels).save(path)
    return str(path)
