"""
Finder session: the glue between a frame source and a feedback sink.

Each processed frame runs the pipeline:
    1. Extract the live signature (perceptual hash + keypoints)
    2. Score it against every item in the injected signature store
    3. Return a ProximityEstimate for the caller to turn into cues

The session gates frames by a minimum interval and tracks runs of
failed or empty results so the caller can suggest reframing the camera.
It does no smoothing across frames; every estimate is raw.
"""

import os
import time
import logging
from typing import Optional

from .errors import InvalidFrame
from .extraction import extract_signature
from .models import LearnedItem, ProximityEstimate
from .scoring import estimate_item_proximity
from .store import SignatureStore

logger = logging.getLogger(__name__)

# 8 frames per second
DEFAULT_MIN_INTERVAL = float(os.environ.get("FINDER_MIN_INTERVAL", "0.125"))
DEFAULT_REFRAME_AFTER = int(os.environ.get("FINDER_REFRAME_AFTER", "10"))


class FinderSession:
    """
    Frame-by-frame lost item search over a signature store.

    Not thread-safe by itself: a session expects one frame in flight at
    a time. The store it wraps may be shared with UI handlers.
    """

    def __init__(self,
                 store: SignatureStore,
                 min_interval: float = DEFAULT_MIN_INTERVAL,
                 reframe_after: int = DEFAULT_REFRAME_AFTER,
                 weights: dict = None,
                 buckets=None,
                 downscale: str = None,
                 clock=time.monotonic):
        """
        Args:
            store: Signature store to teach into and search against.
            min_interval: Seconds between processed frames.
            reframe_after: Consecutive failed or empty frames before
                needs_reframe turns on.
            weights: Optional scoring weight override.
            buckets: Optional distance bucket override.
            downscale: Hash grid downscale method.
            clock: Monotonic clock used for frame gating.
        """
        self.store = store
        self.min_interval = min_interval
        self.reframe_after = reframe_after
        self.weights = weights
        self.buckets = buckets
        self.downscale = downscale
        self._clock = clock

        self._last_processed = None
        self._miss_run = 0
        self._last_estimate = None

    @property
    def last_estimate(self) -> Optional[ProximityEstimate]:
        return self._last_estimate

    @property
    def miss_run(self) -> int:
        return self._miss_run

    @property
    def needs_reframe(self) -> bool:
        return self._miss_run >= self.reframe_after

    def teach(self, pixels, width: int, height: int,
              name: Optional[str] = None) -> LearnedItem:
        """Learn the object in one frame and add it to the store."""
        signature = extract_signature(pixels, width, height,
                                      downscale=self.downscale)
        return self.store.teach(signature, name)

    def forget(self, item_id: str) -> bool:
        return self.store.remove(item_id)

    def process_frame(self, pixels, width: int, height: int,
                      now: float = None) -> Optional[ProximityEstimate]:
        """
        Score one frame, unless it arrives before min_interval has passed.

        Args:
            pixels: Row-major RGBA buffer.
            width: Frame width in pixels.
            height: Frame height in pixels.
            now: Frame time; defaults to the session clock.

        Returns:
            ProximityEstimate, or None if the frame was skipped.

        Raises:
            InvalidFrame: If the frame cannot be processed. The failure
                still counts toward needs_reframe.
        """
        now = self._clock() if now is None else now
        if (self._last_processed is not None
                and now - self._last_processed < self.min_interval):
            return None
        self._last_processed = now

        try:
            live = extract_signature(pixels, width, height,
                                     downscale=self.downscale)
        except InvalidFrame:
            self._record(False)
            raise

        estimate = estimate_item_proximity(
            live, self.store.list(),
            weights=self.weights, buckets=self.buckets,
        )
        self._last_estimate = estimate
        self._record(estimate.similarity > 0.0)

        logger.debug(
            f"Frame scored {estimate.similarity:.3f} "
            f"({estimate.distance_bucket}) item={estimate.item_id}"
        )
        return estimate

    def _record(self, hit: bool) -> None:
        if hit:
            self._miss_run = 0
            return
        self._miss_run += 1
        if self._miss_run == self.reframe_after:
            logger.warning(
                f"{self._miss_run} consecutive frames without a usable "
                f"result, camera may need reframing"
            )

    def reset(self) -> None:
        """Forget frame timing, the miss run and the last estimate."""
        self._last_processed = None
        self._miss_run = 0
        self._last_estimate = None
