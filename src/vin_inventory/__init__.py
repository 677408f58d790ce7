"""
VIN Inventory Scanner
=====================

Reads Vehicle Identification Numbers from camera frames, pairs them with a
GPS fix and reports them to a remote inventory endpoint.

Package Structure:
    vin_inventory/
    ├── core/           # OCR text normalization, VIN validation
    ├── submission/     # Wire models, outcomes, HTTP client, dedup cache
    ├── providers/      # OCR and location collaborators
    ├── pipeline/       # Scan session (frame -> inventory update)
    └── cli.py          # Command line interface

Quick Start:
    from vin_inventory import normalize_ocr_text, extract_vin_candidate
    from vin_inventory import InventoryClient, Coordinate

    vin = extract_vin_candidate(normalize_ocr_text("1HGCM82633A1O4352"))

    async with InventoryClient() as client:
        result = await client.submit(vin, Coordinate(37.422, -122.084))
        print(result.status.value)

Version: 1.0.0
"""

__version__ = "1.0.0"

# Core exports (lightweight, always available)
from .core import (
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VINValidationResult,
    normalize_ocr_text,
    extract_vin_candidate,
    validate_vin,
    validate_vin_format,
    calculate_check_digit,
    validate_checksum,
)
from .submission import (
    Coordinate,
    InventoryUpdateRequest,
    InventoryUpdateResponse,
    SubmissionResult,
    SubmissionStatus,
    RecentSubmissionCache,
    InventoryClient,
)

__all__ = [
    "__version__",
    # Core
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VINValidationResult",
    "normalize_ocr_text",
    "extract_vin_candidate",
    "validate_vin",
    "validate_vin_format",
    "calculate_check_digit",
    "validate_checksum",
    # Submission
    "Coordinate",
    "InventoryUpdateRequest",
    "InventoryUpdateResponse",
    "SubmissionResult",
    "SubmissionStatus",
    "RecentSubmissionCache",
    "InventoryClient",
]


# Lazy imports for the pipeline and OCR providers (OpenCV/numpy)
def __getattr__(name: str):
    """Lazy import for modules with heavier dependencies."""
    if name == "ScanSession":
        from .pipeline.scan_session import ScanSession
        return ScanSession
    elif name == "PaddleOCRProvider":
        from .providers.ocr_providers import PaddleOCRProvider
        return PaddleOCRProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
