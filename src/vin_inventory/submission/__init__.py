"""
VIN Submission Module
=====================

Wire models, outcome classification, retrying HTTP client and the
recent-submission cache.
"""

from .models import (
    Coordinate,
    InventoryUpdateRequest,
    InventoryUpdateResponse,
    format_degrees,
)
from .results import SubmissionResult, SubmissionStatus
from .dedup import RecentSubmissionCache
from .client import InventoryClient

__all__ = [
    "Coordinate",
    "InventoryUpdateRequest",
    "InventoryUpdateResponse",
    "format_degrees",
    "SubmissionResult",
    "SubmissionStatus",
    "RecentSubmissionCache",
    "InventoryClient",
]
