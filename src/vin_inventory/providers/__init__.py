"""
Collaborator Providers Module
=============================

Text recognition and location sources consumed by the scan pipeline.

Usage:
    from vin_inventory.providers import OCRProviderFactory, LastKnownLocationProvider

    provider = OCRProviderFactory.create("paddleocr")
    location = LastKnownLocationProvider()
    location.update(37.422, -122.084)
"""

from .ocr_providers import (
    OCRProviderType,
    OCRResult,
    OCRProvider,
    OCRProviderError,
    PaddleOCRProvider,
    OCRProviderFactory,
    PaddleOCRConfig,
    ProviderConfig,
)
from .location import LocationProvider, LastKnownLocationProvider

__all__ = [
    # OCR
    "OCRProviderType",
    "OCRResult",
    "OCRProvider",
    "OCRProviderError",
    "PaddleOCRProvider",
    "OCRProviderFactory",
    "PaddleOCRConfig",
    "ProviderConfig",
    # Location
    "LocationProvider",
    "LastKnownLocationProvider",
]
