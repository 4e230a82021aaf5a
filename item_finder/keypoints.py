"""
Gradient-based keypoint sampling and nearest-neighbor matching.

A cheap corner-detector substitute: Sobel gradient magnitude is sampled
on a coarse stride over the frame interior and the strongest responses
are kept. There is no sub-pixel refinement and no non-maximum
suppression beyond the stride itself, which keeps the per-frame cost
bounded on a handset.
"""

import os
import math
import logging
from typing import List, Sequence, Tuple

import cv2
import faiss
import numpy as np

from .models import Keypoint

logger = logging.getLogger(__name__)

MAX_KEYPOINTS = int(os.environ.get("MAX_KEYPOINTS", "20"))
KEYPOINT_THRESHOLD = float(os.environ.get("KEYPOINT_THRESHOLD", "50"))
KEYPOINT_STEP = int(os.environ.get("KEYPOINT_STEP", "4"))
KEYPOINT_BORDER = 3

# Keypoints closer than this (normalized units) count as the same feature.
KEYPOINT_MATCH_RADIUS = float(os.environ.get("KEYPOINT_MATCH_RADIUS", "0.05"))

# faiss neighbors re-checked in float64 per live keypoint
NEIGHBOR_CANDIDATES = 4


def extract_keypoints(gray: np.ndarray,
                      max_points: int = MAX_KEYPOINTS,
                      threshold: float = KEYPOINT_THRESHOLD,
                      step: int = KEYPOINT_STEP,
                      border: int = KEYPOINT_BORDER) -> Tuple[Keypoint, ...]:
    """
    Sample strong-gradient points from a full-resolution luminance image.

    Process:
        1. 3x3 Sobel gradients in x and y
        2. Sample magnitude every `step` pixels, excluding a `border`
           pixel margin on each side
        3. Keep samples whose magnitude exceeds `threshold`
        4. Sort by descending magnitude (scan order breaks ties) and
           keep the top `max_points`

    Args:
        gray: float64 luminance image (h, w).
        max_points: Maximum number of keypoints returned.
        threshold: Minimum gradient magnitude.
        step: Sampling stride in pixels.
        border: Excluded margin in pixels.

    Returns:
        Tuple of Keypoint with x, y normalized by width and height.
    """
    h, w = gray.shape[:2]
    if h <= 2 * border or w <= 2 * border:
        return ()

    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)

    ys = np.arange(border, h - border, step)
    xs = np.arange(border, w - border, step)
    grid_y, grid_x = np.meshgrid(ys, xs, indexing="ij")
    grid_y = grid_y.ravel()
    grid_x = grid_x.ravel()

    magnitude = np.sqrt(gx[grid_y, grid_x] ** 2 + gy[grid_y, grid_x] ** 2)

    strong = magnitude > threshold
    grid_y, grid_x, magnitude = grid_y[strong], grid_x[strong], magnitude[strong]

    order = np.argsort(-magnitude, kind="stable")[:max_points]

    keypoints = tuple(
        Keypoint(float(grid_x[i]) / w, float(grid_y[i]) / h, float(magnitude[i]))
        for i in order
    )
    logger.debug(f"Extracted {len(keypoints)} keypoints "
                 f"from {int(strong.sum())} candidates")
    return keypoints


def _as_points(keypoints: Sequence[Keypoint]) -> np.ndarray:
    return np.array([[kp.x, kp.y] for kp in keypoints], dtype=np.float32)


def _distance(a: Keypoint, b: Keypoint) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    return math.sqrt(dx * dx + dy * dy)


def match_keypoints(live: Sequence[Keypoint],
                    learned: Sequence[Keypoint],
                    radius: float = KEYPOINT_MATCH_RADIUS) -> List[Keypoint]:
    """
    Find live keypoints whose nearest learned keypoint is within `radius`.

    An exact faiss L2 index over the learned points proposes the nearest
    candidates. faiss works in float32, which misjudges gaps of exactly
    `radius` (common on the 4-pixel sampling grid), so the candidates'
    distances are recomputed in float64 before the strict comparison.

    Args:
        live: Keypoints from the live frame.
        learned: Keypoints from a learned signature.
        radius: Strict upper bound on the match distance.

    Returns:
        Matching live keypoints, in their original order.
    """
    if not live or not learned:
        return []

    index = faiss.IndexFlatL2(2)
    index.add(_as_points(learned))
    k = min(len(learned), NEIGHBOR_CANDIDATES)
    _, neighbors = index.search(_as_points(live), k)

    matches = []
    for kp, candidates in zip(live, neighbors):
        nearest = min(
            _distance(kp, learned[int(j)]) for j in candidates if j >= 0
        )
        if nearest < radius:
            matches.append(kp)
    return matches


def keypoint_region(keypoints: Sequence[Keypoint]):
    """Bounding box (x, y, w, h) around keypoints, or None if empty."""
    if not keypoints:
        return None
    xs = [kp.x for kp in keypoints]
    ys = [kp.y for kp in keypoints]
    return (min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))
