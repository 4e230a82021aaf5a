"""
item_finder — On-device visual similarity engine for lost item search.

Learns an object's visual signature from one camera frame and scores
live frames against it to estimate proximity, using a DCT perceptual
hash plus Sobel keypoints. No server round-trip, no trained model.

Modules:
    extraction       Frame to VisualSignature
    preprocessing    RGBA buffer validation, luminance, grid downscale
    perceptual_hash  DCT hash and Hamming comparison
    keypoints        Sobel keypoint sampling + faiss nearest-neighbor matching
    scoring          Weighted similarity and proximity buckets
    store            Learned item store and JSON persistence
    engine           Frame-gated finder session
    guidance         Spoken and haptic cue mapping
"""

from .engine import FinderSession
from .errors import FinderError, InvalidFrame, InvalidSignature, StoreFull
from .extraction import extract_signature
from .models import Keypoint, LearnedItem, ProximityEstimate, VisualSignature
from .scoring import estimate_item_proximity, estimate_proximity
from .store import SignatureStore, load_store, save_store

__version__ = "1.0.0"
