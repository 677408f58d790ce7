"""
Recent Submission Cache
=======================

The camera analyzer reports the same physical VIN for many consecutive
frames. The cache maps recently submitted VINs to the time they were
reserved and suppresses resubmission within a cooldown window.

Not thread-safe: the scan session only touches it from the event loop.
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RecentSubmissionCache:
    """
    Cooldown cache of submitted VINs.

    Args:
        cooldown_seconds: Window in which a VIN is not submitted again (<= 0 disables)
        max_entries: Oldest entries are evicted beyond this size
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        cooldown_seconds: float = 30.0,
        max_entries: int = 1024,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.cooldown_seconds = cooldown_seconds
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, float]" = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.cooldown_seconds > 0

    def reserve(self, vin: str) -> bool:
        """
        Claim a VIN for submission.

        Returns:
            True if the caller should submit, False if the VIN was
            reserved within the cooldown window
        """
        if not self.enabled:
            return True

        now = self._clock()
        self._prune(now)

        if vin in self._entries:
            logger.debug(f"Suppressing {vin}: reserved {now - self._entries[vin]:.1f}s ago")
            return False

        self._entries[vin] = now
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted} from recent submissions")
        return True

    def release(self, vin: str) -> None:
        """Forget a reservation so the next read of the VIN is submitted."""
        self._entries.pop(vin, None)

    def clear(self) -> None:
        self._entries.clear()

    def _prune(self, now: float) -> None:
        # Entries are in reservation order, so expired ones sit at the front
        while self._entries:
            vin, reserved_at = next(iter(self._entries.items()))
            if now - reserved_at < self.cooldown_seconds:
                break
            del self._entries[vin]

    def __contains__(self, vin: str) -> bool:
        if not self.enabled:
            return False
        reserved_at = self._entries.get(vin)
        return reserved_at is not None and self._clock() - reserved_at < self.cooldown_seconds

    def __len__(self) -> int:
        return len(self._entries)
