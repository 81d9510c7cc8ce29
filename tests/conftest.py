import numpy as np
import pytest

from segvis.graphics.seg_renderer import SegmentationRenderer


@pytest.fixture(scope="session")
def renderer():
    return SegmentationRenderer(backend="cpu")


@pytest.fixture
def red_green_colors():
    return np.array([
        [255, 0, 0, 255],
        [0, 255, 0, 255],
    ], dtype=np.float32)


@pytest.fixture
def checker_scores():
    return np.array([[0, 1], [1, 0]], dtype=np.uint8)
