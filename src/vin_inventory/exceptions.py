"""
Scanner Exceptions
==================

Exceptions are reserved for programming and configuration errors.
Runtime submission outcomes are reported as SubmissionResult values.
"""

from typing import Any, Dict, Optional


class InventoryError(Exception):
    """
    Base exception for scanner errors.

    Provides structured error information with error codes for programmatic handling.
    """

    def __init__(self, message: str, error_code: str = "INVENTORY_ERROR", context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(InventoryError):
    """Raised when the scanner is misconfigured."""

    def __init__(self, message: str, config_key: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            error_code="CONFIG_ERROR",
            context={"config_key": config_key, "expected": expected}
        )
        self.config_key = config_key
        self.expected = expected
