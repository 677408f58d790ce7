"""
Location Providers
==================

GetLastKnownLocation() -> Coordinate | None. Best effort: None means no
usable fix, and the scan session reports LOCATION_UNAVAILABLE instead of
submitting.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..submission.models import Coordinate

logger = logging.getLogger(__name__)


class LocationProvider(ABC):
    """Source of the freshest available location fix."""

    @abstractmethod
    def get_last_known_location(self) -> Optional[Coordinate]:
        """Return the latest fix, or None when no fix is available."""
        ...


class LastKnownLocationProvider(LocationProvider):
    """
    Holder of the last fix reported by the platform.

    The platform's location callback calls update(); the scan session reads
    the fix at submission time. Thread-safe.

    Args:
        max_age_seconds: Fixes older than this are treated as absent (None = no limit)
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        initial: Optional[Coordinate] = None,
        max_age_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_age_seconds = max_age_seconds
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._fix: Optional[Coordinate] = None
        self._fix_time = 0.0
        if initial is not None:
            self.set(initial)

    def update(self, latitude: float, longitude: float) -> Coordinate:
        """Record a new fix. Raises ValueError for out-of-range values."""
        coordinate = Coordinate(latitude, longitude)
        self.set(coordinate)
        return coordinate

    def set(self, coordinate: Coordinate) -> None:
        with self._lock:
            self._fix = coordinate
            self._fix_time = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._fix = None

    def get_last_known_location(self) -> Optional[Coordinate]:
        with self._lock:
            if self._fix is None:
                return None
            if self.max_age_seconds is not None:
                age = self._clock() - self._fix_time
                if age > self.max_age_seconds:
                    logger.debug(f"Last fix is {age:.1f}s old, treating as unavailable")
                    return None
            return self._fix
