import os
import sys

import numpy as np
import pytest

# Make top-level packages and tests.helpers importable without an install
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from common.types import Coordinate  # noqa: E402


@pytest.fixture
def coordinate() -> Coordinate:
    return Coordinate(37.4219999, -122.0840575)


@pytest.fixture
def rgba_pixels() -> np.ndarray:
    """3x2 RGBA image with distinct values per channel."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(2, 3, 4), dtype=np.uint8)
