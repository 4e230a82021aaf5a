"""Shared test fixtures for item finder tests."""

import numpy as np
import pytest


def rgba_from_gray(gray: np.ndarray) -> np.ndarray:
    """Expand a uint8 gray image to opaque RGBA."""
    frame = np.empty(gray.shape + (4,), dtype=np.uint8)
    frame[:, :, :3] = gray[:, :, None]
    frame[:, :, 3] = 255
    return frame


@pytest.fixture
def flat_frame():
    """64x64 frame where every pixel is the same RGBA value."""
    frame = np.empty((64, 64, 4), dtype=np.uint8)
    frame[:, :] = [120, 80, 40, 255]
    return frame


@pytest.fixture
def square_frame():
    """128x128 dark frame with a mid-gray square in the top-left."""
    gray = np.full((128, 128), 30, dtype=np.uint8)
    gray[8:40, 8:40] = 150
    return rgba_from_gray(gray)


@pytest.fixture
def blocked_frame():
    """square_frame plus a large bright block in the bottom-right."""
    gray = np.full((128, 128), 30, dtype=np.uint8)
    gray[8:40, 8:40] = 150
    gray[64:120, 64:120] = 255
    return rgba_from_gray(gray)


@pytest.fixture
def split_frame():
    """64x64 frame, black left half and white right half."""
    gray = np.zeros((64, 64), dtype=np.uint8)
    gray[:, 32:] = 255
    return rgba_from_gray(gray)


@pytest.fixture
def noise_frame():
    """160x120 random RGBA noise."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, (120, 160, 4)).astype(np.uint8)
