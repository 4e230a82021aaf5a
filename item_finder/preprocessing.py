"""
Frame intake for signature extraction.

Validates raw RGBA buffers from the camera layer, converts them to
BT.601 luminance and produces the fixed-size grid the perceptual hash
is computed on.
"""

import os
import logging

import cv2
import numpy as np

from .errors import InvalidFrame

logger = logging.getLogger(__name__)

# BT.601 luminance weights for R, G, B
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Frames smaller than the hash grid are rejected rather than upscaled.
MIN_FRAME_SIZE = int(os.environ.get("MIN_FRAME_SIZE", "32"))

# "nearest" samples one source pixel per cell (fast, noise sensitive);
# "area" averages the covered block. The two produce different hashes.
DOWNSCALE_METHOD = os.environ.get("FINDER_DOWNSCALE", "nearest")
DOWNSCALE_METHODS = ("nearest", "area")


def frame_to_array(pixels, width: int, height: int) -> np.ndarray:
    """
    Validate an RGBA pixel buffer and view it as an (h, w, 4) array.

    Args:
        pixels: Row-major RGBA bytes (bytes, bytearray, memoryview) or a
            uint8 numpy array, either flat or already shaped (h, w, 4).
        width: Frame width in pixels.
        height: Frame height in pixels.

    Returns:
        uint8 array of shape (height, width, 4).

    Raises:
        InvalidFrame: On non-positive or undersized dimensions, or a
            buffer whose length is not width * height * 4.
    """
    if not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)):
        raise InvalidFrame(
            f"Frame dimensions must be integers, got {width!r}x{height!r}",
            {"width": width, "height": height},
        )
    if width <= 0 or height <= 0:
        raise InvalidFrame(
            f"Frame dimensions must be positive, got {width}x{height}",
            {"width": width, "height": height},
        )
    if width < MIN_FRAME_SIZE or height < MIN_FRAME_SIZE:
        raise InvalidFrame(
            f"Frame {width}x{height} is below the minimum "
            f"{MIN_FRAME_SIZE}x{MIN_FRAME_SIZE}",
            {"width": width, "height": height, "min_size": MIN_FRAME_SIZE},
        )

    if isinstance(pixels, np.ndarray):
        data = pixels
    elif isinstance(pixels, (bytes, bytearray, memoryview)):
        data = np.frombuffer(pixels, dtype=np.uint8)
    else:
        raise InvalidFrame(
            f"Unsupported pixel buffer type: {type(pixels).__name__}",
            {"type": type(pixels).__name__},
        )

    expected = width * height * 4
    if data.size != expected:
        raise InvalidFrame(
            f"Pixel buffer has {data.size} values, expected {expected} "
            f"for {width}x{height} RGBA",
            {"length": int(data.size), "expected": expected},
        )

    if data.dtype != np.uint8:
        data = np.clip(data, 0, 255).astype(np.uint8)

    return data.reshape(height, width, 4)


def to_luminance(rgba: np.ndarray) -> np.ndarray:
    """Convert an (h, w, 4) RGBA array to float64 luminance, alpha ignored."""
    return rgba[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS


def downscale_grid(gray: np.ndarray, size: int = 32,
                   method: str = None) -> np.ndarray:
    """
    Downscale a luminance image to a size x size grid.

    Nearest-neighbor picks source pixel floor(i * dim / size) for each
    target cell, with no anti-aliasing.

    Args:
        gray: float64 luminance image (h, w).
        size: Output grid edge length.
        method: "nearest" or "area". Defaults to DOWNSCALE_METHOD.

    Returns:
        float64 array of shape (size, size).
    """
    method = method or DOWNSCALE_METHOD
    if method not in DOWNSCALE_METHODS:
        raise ValueError(
            f"Unknown downscale method {method!r}, "
            f"expected one of {DOWNSCALE_METHODS}"
        )

    h, w = gray.shape[:2]

    if method == "area":
        return cv2.resize(gray, (size, size),
                          interpolation=cv2.INTER_AREA).astype(np.float64)

    rows = (np.arange(size) * h) // size
    cols = (np.arange(size) * w) // size
    return gray[np.ix_(rows, cols)]
