"""
VIN Core Module
===============

OCR text normalization, VIN constants and validation logic.
Single Source of Truth for all VIN-related functionality.
"""

from .vin_utils import (
    # Constants
    VINConstants,
    VIN_LENGTH,
    VIN_VALID_CHARS,
    VIN_INVALID_CHARS,
    OCR_SUBSTITUTIONS,
    # Normalization
    normalize_ocr_text,
    extract_vin_candidate,
    # Validation
    VINValidationResult,
    validate_vin,
    validate_vin_format,
    # Checksum
    calculate_check_digit,
    validate_checksum,
)

__all__ = [
    # Constants
    "VINConstants",
    "VIN_LENGTH",
    "VIN_VALID_CHARS",
    "VIN_INVALID_CHARS",
    "OCR_SUBSTITUTIONS",
    # Normalization
    "normalize_ocr_text",
    "extract_vin_candidate",
    # Validation
    "VINValidationResult",
    "validate_vin",
    "validate_vin_format",
    # Checksum
    "calculate_check_digit",
    "validate_checksum",
]
