"""
Spatial Index - Radius-queryable map from feature-space keys to values.

Keys are points in the 4-D feature space (usually voxels). Lookups are
radius queries: everything within `radius` of the query point is returned,
nearest first. Insertion is idempotent-by-radius: upsert() only creates a
new entry after a miss within the match radius, so no two keys closer than
the match radius are ever stored.

Entries are never evicted. Keys live in one contiguous numpy array that
grows geometrically, so a query is a single vectorised distance computation.
The observation and decision workers share indices, so every operation
holds the index lock.
"""

import threading
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

import numpy as np

from .state import NUM_FEATURES, MATCH_RADIUS

T = TypeVar('T')

# (distance, key, value)
IndexEntry = Tuple[float, np.ndarray, Any]


class SpatialIndex(Generic[T]):
    """In-memory nearest-neighbour index over fixed-dimension keys."""

    def __init__(self, dims: int = NUM_FEATURES, match_radius: float = MATCH_RADIUS,
                 initial_capacity: int = 64):
        if dims < 1:
            raise ValueError("dims must be >= 1")
        self.dims = dims
        self.match_radius = match_radius
        self._keys = np.empty((max(1, initial_capacity), dims), dtype=np.float64)
        self._values: List[T] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._values)

    def values(self) -> List[T]:
        with self._lock:
            return list(self._values)

    def _check_key(self, key) -> np.ndarray:
        point = np.asarray(key, dtype=np.float64)
        if point.shape != (self.dims,):
            raise ValueError(f"Key must have shape ({self.dims},), got {point.shape}")
        return point

    def insert(self, key, value: T) -> T:
        """Unconditionally store value at key."""
        point = self._check_key(key)
        with self._lock:
            n = len(self._values)
            if n >= self._keys.shape[0]:
                grown = np.empty((self._keys.shape[0] * 2, self.dims), dtype=np.float64)
                grown[:n] = self._keys[:n]
                self._keys = grown
            self._keys[n] = point
            self._values.append(value)
        return value

    def query(self, key, radius: float) -> List[IndexEntry]:
        """All entries within radius of key, nearest first."""
        point = self._check_key(key)
        with self._lock:
            n = len(self._values)
            if n == 0:
                return []

            distances = np.linalg.norm(self._keys[:n] - point, axis=1)
            hits = np.flatnonzero(distances <= radius)
            order = hits[np.argsort(distances[hits], kind='stable')]
            return [
                (float(distances[i]), self._keys[i].copy(), self._values[i])
                for i in order
            ]

    def nearest(self, key, radius: float) -> Optional[IndexEntry]:
        found = self.query(key, radius)
        return found[0] if found else None

    def upsert(self, key, factory: Callable[[], T],
               update: Optional[Callable[[T], None]] = None,
               radius: Optional[float] = None) -> Tuple[T, bool]:
        """
        Mutate the nearest entry within the match radius, else insert a new one.

        Returns (value, created).
        """
        with self._lock:
            match = self.nearest(key, self.match_radius if radius is None else radius)
            if match is not None:
                value = match[2]
                if update is not None:
                    update(value)
                return value, False

            return self.insert(key, factory()), True
