"""Tests for DCT perceptual hashing and Hamming comparison."""

import numpy as np
import pytest

from item_finder.errors import InvalidSignature
from item_finder.perceptual_hash import (
    _pack_bits, compute_dct, compute_perceptual_hash, hamming_distance,
    hash_similarity, HASH_HEX_LENGTH,
)
from item_finder.preprocessing import to_luminance


def reference_dct(grid):
    n = grid.shape[0]
    k = np.arange(n)
    basis = np.cos((2 * k[None, :] + 1) * k[:, None] * np.pi / (2 * n))
    scale = np.where(k == 0, 1 / np.sqrt(2), 1.0)
    return np.outer(scale, scale) * (basis @ grid @ basis.T) / 4


def reference_hash(gray):
    h, w = gray.shape
    grid = np.array([[gray[(y * h) // 32, (x * w) // 32] for x in range(32)]
                     for y in range(32)])
    dct = reference_dct(grid)
    coeffs = [dct[v, u] for v in range(8) for u in range(8) if (u, v) != (0, 0)]
    median = sorted(coeffs)[len(coeffs) // 2]
    digits = ""
    for i in range(0, len(coeffs), 4):
        nibble = 0
        for j, c in enumerate(coeffs[i:i + 4]):
            if c > median:
                nibble |= 1 << j
        digits += "%x" % nibble
    return digits.ljust(16, "0")


class TestComputeDct:
    """Tests for the scaled 2-D DCT-II."""

    def test_matches_direct_formula(self):
        rng = np.random.RandomState(7)
        grid = rng.uniform(0, 255, (32, 32))
        assert np.allclose(compute_dct(grid), reference_dct(grid))

    def test_constant_grid(self):
        grid = np.full((32, 32), 10.0)
        dct = compute_dct(grid)
        assert dct[0, 0] == pytest.approx(1280.0)
        ac = dct.copy()
        ac[0, 0] = 0
        assert np.allclose(ac, 0)


class TestComputePerceptualHash:
    """Tests for hash generation."""

    def test_length_and_alphabet(self, noise_frame):
        phash = compute_perceptual_hash(to_luminance(noise_frame))
        assert len(phash) == HASH_HEX_LENGTH
        assert set(phash) <= set("0123456789abcdef")

    def test_deterministic(self, square_frame):
        gray = to_luminance(square_frame)
        assert compute_perceptual_hash(gray) == compute_perceptual_hash(gray)

    def test_flat_frame_ties_at_median_are_zero(self, flat_frame):
        phash = compute_perceptual_hash(to_luminance(flat_frame))
        assert phash == "0" * 16

    def test_half_the_bits_set_on_structured_frame(self, noise_frame):
        # Strictly-above-median over 63 distinct values sets 31 bits
        phash = compute_perceptual_hash(to_luminance(noise_frame))
        assert hamming_distance(phash, "0" * 16) == 31

    def test_different_frames_different_hashes(self, square_frame, blocked_frame):
        a = compute_perceptual_hash(to_luminance(square_frame))
        b = compute_perceptual_hash(to_luminance(blocked_frame))
        assert a != b

    def test_area_downscale_still_valid(self, noise_frame):
        phash = compute_perceptual_hash(to_luminance(noise_frame), downscale="area")
        assert len(phash) == HASH_HEX_LENGTH

    def test_matches_direct_formula(self, noise_frame):
        gray = to_luminance(noise_frame)
        assert compute_perceptual_hash(gray) == reference_hash(gray)

    def test_matches_direct_formula_on_square_frame(self):
        rng = np.random.RandomState(3)
        gray = rng.uniform(0, 255, (96, 96))
        assert compute_perceptual_hash(gray) == reference_hash(gray)


class TestPackBits:
    """Tests for nibble packing order."""

    def test_first_bit_is_lowest(self):
        assert _pack_bits([1, 0, 0, 0]) == "1"
        assert _pack_bits([0, 0, 0, 1]) == "8"
        assert _pack_bits([1, 1, 0, 1]) == "b"

    def test_groups_left_to_right(self):
        assert _pack_bits([1, 0, 0, 0, 0, 1, 0, 0]) == "12"

    def test_last_of_63_bits_ends_short_nibble(self):
        bits = [0] * 63
        bits[62] = 1
        assert _pack_bits(bits) == "0" * 15 + "4"

    def test_first_of_63_bits(self):
        bits = [0] * 63
        bits[0] = 1
        assert _pack_bits(bits) == "1" + "0" * 15


class TestHammingDistance:
    """Tests for bitwise hash comparison."""

    def test_identical(self):
        assert hamming_distance("a1b2c3d4e5f60718", "a1b2c3d4e5f60718") == 0

    def test_all_bits_differ(self):
        assert hamming_distance("f" * 16, "0" * 16) == 64

    def test_single_nibble(self):
        assert hamming_distance("1" + "0" * 15, "0" * 16) == 1
        assert hamming_distance("7" + "0" * 15, "8" + "0" * 15) == 4

    def test_symmetric(self):
        a, b = "0123456789abcdef", "fedcba9876543210"
        assert hamming_distance(a, b) == hamming_distance(b, a)

    def test_case_insensitive(self):
        assert hamming_distance("ABCDEF", "abcdef") == 0

    def test_compares_shortest_prefix(self):
        assert hamming_distance("ff", "ff00") == 0

    def test_rejects_non_hex(self):
        with pytest.raises(InvalidSignature):
            hamming_distance("zz", "00")

    def test_rejects_empty(self):
        with pytest.raises(InvalidSignature):
            hamming_distance("", "00")


class TestHashSimilarity:
    """Tests for normalized hash similarity."""

    def test_identical_is_one(self):
        assert hash_similarity("0123456789abcdef", "0123456789abcdef") == 1.0

    def test_opposite_is_zero(self):
        assert hash_similarity("f" * 16, "0" * 16) == 0.0

    def test_partial(self):
        assert hash_similarity("f" * 8 + "0" * 8, "0" * 16) == pytest.approx(0.5)
