"""
Error taxonomy for the visual similarity engine.

Extraction and scoring failures indicate a capture-layer or programming
bug, so they are raised immediately rather than degraded into a
zero-similarity result that would look like "no match".
"""

from typing import Optional


class FinderError(Exception):
    """Base exception for item finder operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class InvalidFrame(FinderError, ValueError):
    """Raised when a pixel buffer has bad dimensions or length."""


class InvalidSignature(FinderError, ValueError):
    """Raised when a signature is malformed and cannot be compared."""


class StoreFull(FinderError):
    """Raised when teaching would exceed the store's item limit."""
