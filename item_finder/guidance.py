"""
Spoken and haptic cues for proximity estimates.

Pure mappings; playing audio or vibrating the device is left to the
caller's platform layer.
"""

from .models import CENTER, CLOSE, FAR, LEFT, MEDIUM, RIGHT, VERY_CLOSE, ProximityEstimate

DIRECTION_PHRASES = {
    LEFT: "Turn left",
    RIGHT: "Turn right",
    CENTER: "Straight ahead",
}

DISTANCE_PHRASES = {
    VERY_CLOSE: "Very close",
    CLOSE: "Close",
    MEDIUM: "Getting warmer",
    FAR: "Keep searching",
}

# Vibration patterns in milliseconds (on, off, on, ...)
HAPTIC_PATTERNS = {
    VERY_CLOSE: (100, 50, 100, 50, 100),
    CLOSE: (150, 100, 150),
    MEDIUM: (200, 200, 200),
    FAR: (300,),
}
DEFAULT_HAPTIC_PATTERN = (100,)


def guidance_message(estimate: ProximityEstimate) -> str:
    """Short phrase such as "Turn left. Very close." for text-to-speech."""
    distance = DISTANCE_PHRASES.get(estimate.distance_bucket, DISTANCE_PHRASES[FAR])
    direction = DIRECTION_PHRASES.get(estimate.direction)
    if direction is None:
        return f"{distance}."
    return f"{direction}. {distance}."


def haptic_pattern(bucket: str) -> tuple:
    return HAPTIC_PATTERNS.get(bucket, DEFAULT_HAPTIC_PATTERN)
