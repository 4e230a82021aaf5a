"""Frame to VisualSignature extraction."""

import time
import logging

from .keypoints import extract_keypoints
from .models import VisualSignature
from .perceptual_hash import compute_perceptual_hash
from .preprocessing import frame_to_array, to_luminance

logger = logging.getLogger(__name__)


def extract_signature(pixels, width: int, height: int,
                      downscale: str = None,
                      clock=time.time) -> VisualSignature:
    """
    Build the visual signature of one RGBA frame.

    Hash and keypoints are a pure function of the pixels; only
    `captured_at` depends on `clock`.

    Args:
        pixels: Row-major RGBA buffer, see preprocessing.frame_to_array.
        width: Frame width in pixels.
        height: Frame height in pixels.
        downscale: Hash grid downscale method ("nearest" or "area").
        clock: Callable returning the capture timestamp.

    Raises:
        InvalidFrame: If the buffer or its dimensions are invalid.
    """
    rgba = frame_to_array(pixels, width, height)
    gray = to_luminance(rgba)

    signature = VisualSignature(
        perceptual_hash=compute_perceptual_hash(gray, downscale=downscale),
        keypoints=extract_keypoints(gray),
        width=int(width),
        height=int(height),
        captured_at=clock(),
    )
    logger.debug(f"Signature {signature.perceptual_hash} with "
                 f"{len(signature.keypoints)} keypoints from {width}x{height}")
    return signature
