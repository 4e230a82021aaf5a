"""
DCT-based perceptual hashing.

The hash captures the low-frequency luminance layout of a frame: the
32x32 grid is transformed with a 2-D DCT-II, the 63 lowest non-DC
coefficients are compared against their median, and the resulting bits
are packed into 16 hex characters.

Tie-break: a coefficient exactly equal to the median yields a 0 bit.
Coefficients are rounded before thresholding so that floating-point
residue on a flat frame does not decide the bits.
"""

import os
import logging

import cv2
import numpy as np

from .errors import InvalidSignature
from .preprocessing import downscale_grid

logger = logging.getLogger(__name__)

HASH_GRID_SIZE = 32
HASH_BLOCK_SIZE = 8
HASH_HEX_LENGTH = 16
HASH_COEFF_DECIMALS = int(os.environ.get("HASH_COEFF_DECIMALS", "6"))

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_NIBBLE_BITS = np.array([bin(i).count("1") for i in range(16)], dtype=np.int64)


def compute_dct(grid: np.ndarray) -> np.ndarray:
    """
    2-D DCT-II of a square grid.

    Scaled as cu * cv * sum / 4 with cu = cv = 1/sqrt(2) at index 0.
    OpenCV's orthonormal DCT carries a 2/N factor instead of 1/4, so the
    result is rescaled by N/8.
    """
    size = grid.shape[0]
    coeffs = cv2.dct(np.ascontiguousarray(grid, dtype=np.float64))
    return coeffs * (size / 8.0)


def _pack_bits(bits) -> str:
    # First bit of each group of four lands in the nibble's lowest bit.
    digits = []
    for i in range(0, len(bits), 4):
        nibble = 0
        for j, bit in enumerate(bits[i:i + 4]):
            if bit:
                nibble |= 1 << j
        digits.append(format(nibble, "x"))
    return "".join(digits)


def compute_perceptual_hash(gray: np.ndarray,
                            size: int = HASH_GRID_SIZE,
                            block: int = HASH_BLOCK_SIZE,
                            downscale: str = None) -> str:
    """
    Compute the 64-bit perceptual hash of a luminance image.

    Process:
        1. Downscale to a size x size grid
        2. 2-D DCT-II
        3. Collect the top-left block x block coefficients row by row,
           skipping the DC term
        4. Threshold each against the median (strictly greater = 1)
        5. Pack into hex nibbles, right-pad with '0' to 16 characters

    Args:
        gray: float64 luminance image (h, w).
        size: DCT grid size.
        block: Edge of the low-frequency block used for the hash.
        downscale: Downscale method, see preprocessing.downscale_grid.

    Returns:
        Lowercase hex string of HASH_HEX_LENGTH characters.
    """
    grid = downscale_grid(gray, size, downscale)
    dct = compute_dct(grid)

    coeffs = dct[:block, :block].flatten()[1:]
    coeffs = np.round(coeffs, HASH_COEFF_DECIMALS)

    median = np.sort(coeffs)[len(coeffs) // 2]
    bits = coeffs > median

    return _pack_bits(bits).ljust(HASH_HEX_LENGTH, "0")


def _hex_values(hash_str: str) -> np.ndarray:
    if not hash_str or not set(hash_str) <= HEX_DIGITS:
        raise InvalidSignature(
            f"Perceptual hash must be a non-empty hex string, got {hash_str!r}",
            {"hash": hash_str},
        )
    return np.array([int(c, 16) for c in hash_str], dtype=np.int64)


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """
    Count differing bits between two hex hashes.

    Only the first min(len(a), len(b)) nibbles are compared.
    """
    a = _hex_values(hash_a)
    b = _hex_values(hash_b)
    n = min(len(a), len(b))
    return int(_NIBBLE_BITS[a[:n] ^ b[:n]].sum())


def hash_similarity(hash_a: str, hash_b: str) -> float:
    """Similarity in [0, 1]: one minus the fraction of differing bits."""
    distance = hamming_distance(hash_a, hash_b)
    total_bits = min(len(hash_a), len(hash_b)) * 4
    return 1.0 - distance / total_bits
