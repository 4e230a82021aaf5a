"""
Similarity scoring and proximity estimation.

Combines two signals into a single similarity in [0, 1]:
    - perceptual hash agreement (global structure)
    - keypoint nearest-neighbor agreement (local corners)

The hash is weighted higher because the keypoint sampler is noisy
under handheld camera motion. Weights, bucket cutoffs and the keypoint
match radius are empirical tuning knobs, not derived constants; each is
read from the environment and can be overridden per call.
"""

import os
import math
import logging
from typing import List, Optional, Sequence, Tuple

from .errors import InvalidSignature
from .keypoints import KEYPOINT_MATCH_RADIUS, MAX_KEYPOINTS, keypoint_region, match_keypoints
from .models import (
    CENTER, CLOSE, FAR, LEFT, MEDIUM, RIGHT, VERY_CLOSE,
    Keypoint, LearnedItem, ProximityEstimate, VisualSignature,
)
from .perceptual_hash import HASH_HEX_LENGTH, HEX_DIGITS, hash_similarity

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    "hash":      float(os.environ.get("SCORE_HASH_W", "0.6")),
    "keypoints": float(os.environ.get("SCORE_KEYPOINT_W", "0.4")),
}

# (exclusive lower bound, bucket), checked in order; anything else is FAR
DISTANCE_BUCKETS = (
    (float(os.environ.get("BUCKET_VERY_CLOSE", "0.85")), VERY_CLOSE),
    (float(os.environ.get("BUCKET_CLOSE", "0.70")), CLOSE),
    (float(os.environ.get("BUCKET_MEDIUM", "0.55")), MEDIUM),
)

# Horizontal thirds of the frame for direction hints
DIRECTION_LEFT_MAX = 0.33
DIRECTION_RIGHT_MIN = 0.66


def validate_signature(signature: VisualSignature) -> None:
    """
    Fail fast on signatures that cannot be compared meaningfully.

    Raises:
        InvalidSignature: On non-positive dimensions, a hash that is not
            exactly 16 hex characters, too many keypoints, or keypoints
            with coordinates outside [0, 1] or non-finite intensity.
    """
    if not isinstance(signature, VisualSignature):
        raise InvalidSignature(
            f"Expected VisualSignature, got {type(signature).__name__}"
        )

    if signature.width <= 0 or signature.height <= 0:
        raise InvalidSignature(
            f"Signature dimensions must be positive, got "
            f"{signature.width}x{signature.height}",
            {"width": signature.width, "height": signature.height},
        )

    phash = signature.perceptual_hash
    if (not isinstance(phash, str) or len(phash) != HASH_HEX_LENGTH
            or not set(phash) <= HEX_DIGITS):
        raise InvalidSignature(
            f"Perceptual hash must be {HASH_HEX_LENGTH} hex characters, "
            f"got {phash!r}",
            {"hash": phash},
        )

    if len(signature.keypoints) > MAX_KEYPOINTS:
        raise InvalidSignature(
            f"Signature has {len(signature.keypoints)} keypoints, "
            f"limit is {MAX_KEYPOINTS}",
            {"keypoints": len(signature.keypoints)},
        )

    for kp in signature.keypoints:
        if not (0.0 <= kp.x <= 1.0 and 0.0 <= kp.y <= 1.0):
            raise InvalidSignature(
                f"Keypoint ({kp.x}, {kp.y}) outside normalized range",
                {"keypoint": tuple(kp)},
            )
        if not math.isfinite(kp.intensity) or kp.intensity < 0:
            raise InvalidSignature(
                f"Keypoint intensity must be finite and non-negative, "
                f"got {kp.intensity}",
                {"keypoint": tuple(kp)},
            )


def classify_distance(similarity: float, buckets=None) -> str:
    """Map a similarity to a proximity bucket using strict > cutoffs."""
    for cutoff, bucket in buckets or DISTANCE_BUCKETS:
        if similarity > cutoff:
            return bucket
    return FAR


def direction_for_region(region) -> Optional[str]:
    """Left / center / right from the horizontal center of a region."""
    if region is None:
        return None
    x, _, w, _ = region
    center_x = x + w / 2
    if center_x < DIRECTION_LEFT_MAX:
        return LEFT
    if center_x > DIRECTION_RIGHT_MIN:
        return RIGHT
    return CENTER


def compare_signatures(live: VisualSignature,
                       learned: VisualSignature,
                       weights: dict = None,
                       radius: float = None) -> Tuple[float, List[Keypoint]]:
    """
    Weighted similarity between two validated signatures.

    Args:
        live: Signature from the current frame.
        learned: Stored signature.
        weights: Optional override for DEFAULT_WEIGHTS.
        radius: Optional override for the keypoint match radius.

    Returns:
        Tuple of (similarity, matched live keypoints).
    """
    w = weights or DEFAULT_WEIGHTS
    radius = KEYPOINT_MATCH_RADIUS if radius is None else radius

    hash_sim = hash_similarity(live.perceptual_hash, learned.perceptual_hash)

    if live.keypoints and learned.keypoints:
        matches = match_keypoints(live.keypoints, learned.keypoints, radius)
        keypoint_sim = len(matches) / len(live.keypoints)
    else:
        matches = []
        keypoint_sim = 0.0

    similarity = w["hash"] * hash_sim + w["keypoints"] * keypoint_sim
    return float(similarity), matches


def _build_estimate(similarity: float, matches, buckets,
                    item_id: str = None) -> ProximityEstimate:
    region = keypoint_region(matches)
    return ProximityEstimate(
        similarity=similarity,
        distance_bucket=classify_distance(similarity, buckets),
        confidence=similarity,
        item_id=item_id,
        region=region,
        direction=direction_for_region(region),
    )


def estimate_proximity(live: VisualSignature,
                       learned_signatures: Sequence[VisualSignature],
                       weights: dict = None,
                       buckets=None,
                       radius: float = None) -> ProximityEstimate:
    """
    Score a live signature against learned signatures.

    The best (maximum) similarity across all learned signatures wins;
    on ties the earliest one is kept. With nothing learned the result is
    similarity 0 in the FAR bucket.

    Raises:
        InvalidSignature: If any signature is malformed.
    """
    validate_signature(live)

    best_similarity = 0.0
    best_matches = []
    for learned in learned_signatures:
        validate_signature(learned)
        similarity, matches = compare_signatures(live, learned, weights, radius)
        if similarity > best_similarity:
            best_similarity, best_matches = similarity, matches

    return _build_estimate(best_similarity, best_matches, buckets)


def score_items(live: VisualSignature,
                items: Sequence[LearnedItem],
                weights: dict = None,
                radius: float = None) -> List[Tuple[LearnedItem, float]]:
    """
    Similarity of a live signature to every learned item.

    Returns:
        List of (item, similarity), highest first; ties keep store order.
    """
    validate_signature(live)

    scored = []
    for item in items:
        validate_signature(item.signature)
        similarity, _ = compare_signatures(live, item.signature, weights, radius)
        scored.append((item, similarity))

    return sorted(scored, key=lambda pair: -pair[1])


def estimate_item_proximity(live: VisualSignature,
                            items: Sequence[LearnedItem],
                            weights: dict = None,
                            buckets=None,
                            radius: float = None) -> ProximityEstimate:
    """Like estimate_proximity, but reports which learned item matched best."""
    ranked = score_items(live, items, weights, radius)
    if not ranked or ranked[0][1] <= 0.0:
        return _build_estimate(0.0, [], buckets)

    best_item, _ = ranked[0]
    similarity, matches = compare_signatures(live, best_item.signature, weights, radius)
    return _build_estimate(similarity, matches, buckets, item_id=best_item.id)
