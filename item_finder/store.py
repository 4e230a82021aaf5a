"""
In-memory signature store with optional JSON persistence.

A store is an explicit object owned by the caller, never a module
global, so separate finder sessions and tests stay isolated. All
operations take one lock: teach and compare can race with a
UI-triggered "forget item" when threads are involved.
"""

import os
import json
import time
import uuid
import logging
import tempfile
import threading
from typing import Optional, Tuple

from .errors import InvalidSignature, StoreFull
from .models import LearnedItem, VisualSignature
from .scoring import validate_signature

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


class SignatureStore:
    """
    Ordered collection of learned items.

    Duplicates are allowed: teaching never compares against existing
    entries. Items are immutable; the only mutations are teach, remove
    and clear.
    """

    def __init__(self, max_items: Optional[int] = None, clock=time.time):
        """
        Args:
            max_items: Optional cap on learned items (None = unlimited).
            clock: Callable returning the creation timestamp for items.
        """
        self.max_items = max_items
        self._clock = clock
        self._items = []
        self._lock = threading.Lock()

    def teach(self, signature: VisualSignature,
              name: Optional[str] = None) -> LearnedItem:
        """
        Store a signature as a new learned item.

        Raises:
            InvalidSignature: If the signature is malformed.
            StoreFull: If max_items would be exceeded.
        """
        validate_signature(signature)
        item = LearnedItem(
            id=uuid.uuid4().hex,
            signature=signature,
            name=name,
            created_at=self._clock(),
        )
        with self._lock:
            if self.max_items is not None and len(self._items) >= self.max_items:
                raise StoreFull(
                    f"Store already holds {len(self._items)} items "
                    f"(limit {self.max_items})",
                    {"limit": self.max_items},
                )
            self._items.append(item)
        logger.info(f"Learned item {item.id} ({name or 'unnamed'})")
        return item

    def _add(self, item: LearnedItem) -> None:
        validate_signature(item.signature)
        with self._lock:
            self._items.append(item)

    def list(self) -> Tuple[LearnedItem, ...]:
        """Snapshot of learned items in insertion order."""
        with self._lock:
            return tuple(self._items)

    def signatures(self) -> Tuple[VisualSignature, ...]:
        with self._lock:
            return tuple(item.signature for item in self._items)

    def get(self, item_id: str) -> Optional[LearnedItem]:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        return None

    def remove(self, item_id: str) -> bool:
        """Delete an item; returns whether anything was removed."""
        with self._lock:
            for i, item in enumerate(self._items):
                if item.id == item_id:
                    del self._items[i]
                    break
            else:
                return False
        logger.info(f"Removed learned item {item_id}")
        return True

    def clear(self) -> None:
        with self._lock:
            count = len(self._items)
            self._items = []
        logger.info(f"Cleared {count} learned items")

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self):
        return iter(self.list())


def save_store(store: SignatureStore, path: str) -> int:
    """
    Write a store's items to a JSON file, replacing it atomically.

    The file is plain JSON; encryption at rest is left to the host's
    storage layer.

    Returns:
        Number of items written.
    """
    items = store.list()
    payload = {
        "version": STORE_FORMAT_VERSION,
        "items": [item.to_dict() for item in items],
    }

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

    logger.info(f"Saved {len(items)} learned items to {path}")
    return len(items)


def load_store(path: str, max_items: Optional[int] = None,
               clock=time.time) -> SignatureStore:
    """
    Load a store written by save_store.

    A missing file yields an empty store. `max_items` applies to future
    teach calls only; every persisted item is loaded.

    Raises:
        InvalidSignature: If the file contents are malformed.
    """
    store = SignatureStore(max_items=max_items, clock=clock)

    if not os.path.exists(path):
        logger.warning(f"No saved store at {path}, starting empty")
        return store

    with open(path, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidSignature(f"Store file {path} is not valid JSON: {e}",
                                   {"path": path}) from e

    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise InvalidSignature(f"Store file {path} has no item list",
                               {"path": path})

    for record in payload["items"]:
        store._add(LearnedItem.from_dict(record))

    logger.info(f"Loaded {len(store)} learned items from {path}")
    return store
