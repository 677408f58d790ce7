"""
VIN Inventory Pipeline
======================

Contains the scan session that turns frames into inventory updates.
"""

from .scan_session import ScanSession, OperatorAlert

__all__ = ["ScanSession", "OperatorAlert"]
