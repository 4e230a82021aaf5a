"""
Value types shared by extraction, the signature store and the scorer.

Signatures and learned items are frozen: once extracted or taught they
are never mutated, so they can be shared freely between the frame loop
and user-interaction handlers.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from .errors import InvalidSignature

# Proximity buckets, nearest first
VERY_CLOSE = "very_close"
CLOSE = "close"
MEDIUM = "medium"
FAR = "far"

LEFT = "left"
CENTER = "center"
RIGHT = "right"


class Keypoint(NamedTuple):
    """High-gradient sample point, coordinates normalized to [0, 1]."""
    x: float
    y: float
    intensity: float


@dataclass(frozen=True)
class VisualSignature:
    """
    Compact fingerprint of a single frame.

    Attributes:
        perceptual_hash: 16 hex characters (64 bits) of DCT structure.
        keypoints: Up to 20 keypoints, strongest first.
        width: Source frame width in pixels.
        height: Source frame height in pixels.
        captured_at: Extraction timestamp (seconds).
    """
    perceptual_hash: str
    keypoints: Tuple[Keypoint, ...]
    width: int
    height: int
    captured_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "perceptual_hash": self.perceptual_hash,
            "keypoints": [list(kp) for kp in self.keypoints],
            "width": self.width,
            "height": self.height,
            "captured_at": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VisualSignature":
        try:
            keypoints = tuple(
                Keypoint(float(x), float(y), float(intensity))
                for x, y, intensity in data["keypoints"]
            )
            return cls(
                perceptual_hash=str(data["perceptual_hash"]),
                keypoints=keypoints,
                width=int(data["width"]),
                height=int(data["height"]),
                captured_at=float(data.get("captured_at", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSignature(
                f"Malformed signature record: {e}", {"record": data}
            ) from e


@dataclass(frozen=True)
class LearnedItem:
    """A user-taught entry in the signature store."""
    id: str
    signature: VisualSignature
    name: Optional[str] = None
    created_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "signature": self.signature.to_dict(),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearnedItem":
        try:
            return cls(
                id=str(data["id"]),
                signature=VisualSignature.from_dict(data["signature"]),
                name=data.get("name"),
                created_at=float(data.get("created_at", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, InvalidSignature):
                raise
            raise InvalidSignature(
                f"Malformed learned item record: {e}", {"record": data}
            ) from e


@dataclass(frozen=True)
class ProximityEstimate:
    """
    Result of scoring one live frame against the learned signatures.

    `confidence` mirrors `similarity`; there is no separate calibration.
    `region` is the (x, y, w, h) box around the live keypoints that
    matched the best learned signature, in normalized coordinates.
    """
    similarity: float
    distance_bucket: str
    confidence: float
    item_id: Optional[str] = None
    region: Optional[Tuple[float, float, float, float]] = None
    direction: Optional[str] = None
