"""
Scanner Configuration - Centralized Settings
============================================

All configurable parameters in one place.
Supports environment variable overrides.

Usage:
    from vin_inventory.config import get_config
    config = get_config()
    print(config.submission.endpoint_url)

Environment Variables:
    VIN_INVENTORY_BASE_URL=https://example.com/inventory/
    VIN_HTTP_MAX_RETRIES=2
    VIN_DEDUP_COOLDOWN=30
    VIN_LOG_LEVEL=DEBUG
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://optimumdrag.com/test2024/"
DEFAULT_ENDPOINT_PATH = "phone_update_inventory.php"


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {key}: {value}, using default {default}")
    return default


def _get_env_optional_float(key: str) -> Optional[float]:
    """Get float from environment variable, None when unset or invalid."""
    value = os.environ.get(key)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid float for {key}: {value}, ignoring")
        return None


def _get_env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        return value.lower() in ('true', '1', 'yes', 'on')
    return default


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class SubmissionConfig:
    """Inventory endpoint and HTTP retry configuration."""

    base_url: str = field(
        default_factory=lambda: _get_env_str('VIN_INVENTORY_BASE_URL', DEFAULT_BASE_URL)
    )
    endpoint_path: str = DEFAULT_ENDPOINT_PATH

    # Seconds, applied to connect/read/write/pool
    timeout: float = field(
        default_factory=lambda: _get_env_float('VIN_HTTP_TIMEOUT', 10.0)
    )

    # Extra attempts after the first one (0 = single shot)
    max_retries: int = field(
        default_factory=lambda: _get_env_int('VIN_HTTP_MAX_RETRIES', 2)
    )
    retry_delay: float = field(
        default_factory=lambda: _get_env_float('VIN_HTTP_RETRY_DELAY', 0.5)
    )
    max_retry_delay: float = 8.0

    user_agent: str = "vin-inventory-scanner/1.0.0"

    @property
    def endpoint_url(self) -> str:
        """Full URL of the inventory update endpoint."""
        return self.base_url.rstrip('/') + '/' + self.endpoint_path.lstrip('/')


@dataclass
class DedupConfig:
    """Suppression of repeated reads of the same VIN."""

    # 0 disables suppression; 30s is a deployment choice, tune per site
    cooldown_seconds: float = field(
        default_factory=lambda: _get_env_float('VIN_DEDUP_COOLDOWN', 30.0)
    )
    max_entries: int = 1024


@dataclass
class ScanConfig:
    """Scan session behavior."""

    reject_invalid_vins: bool = field(
        default_factory=lambda: _get_env_bool('VIN_REJECT_INVALID', True)
    )
    network_failure_alert_threshold: int = 3

    # Fixes older than this are treated as unavailable (None = no limit)
    location_max_age_seconds: Optional[float] = field(
        default_factory=lambda: _get_env_optional_float('VIN_LOCATION_MAX_AGE')
    )


@dataclass
class OCRConfig:
    """PaddleOCR configuration."""

    language: str = 'en'

    det_db_box_thresh: float = field(
        default_factory=lambda: _get_env_float('VIN_DET_BOX_THRESH', 0.3)
    )

    use_gpu: bool = field(
        default_factory=lambda: _get_env_bool('VIN_USE_GPU', False)
    )
    ocr_version: str = "PP-OCRv3"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(
        default_factory=lambda: _get_env_str('VIN_LOG_LEVEL', 'INFO')
    )
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format: str = '%Y-%m-%d %H:%M:%S'

    # File logging (optional)
    log_file: Optional[str] = field(
        default_factory=lambda: os.environ.get('VIN_LOG_FILE')
    )


@dataclass
class ScannerConfig:
    """Complete scanner configuration."""

    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def save(self, path: Path):
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'ScannerConfig':
        """Load configuration from JSON file."""
        with open(path) as f:
            data = json.load(f)

        config = cls()

        for section in ('submission', 'dedup', 'scan', 'ocr', 'logging'):
            if section not in data:
                continue
            target = getattr(config, section)
            for key, value in data[section].items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key {section}.{key}, ignoring")

        return config


# Global configuration instance (singleton pattern)
_config: Optional[ScannerConfig] = None


def get_config() -> ScannerConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call, returns cached instance thereafter.
    """
    global _config
    if _config is None:
        _config = ScannerConfig()
        setup_logging(_config.logging)
    return _config


def reset_config():
    """Reset configuration to defaults (useful for testing)."""
    global _config
    _config = None


def setup_logging(config: LoggingConfig):
    """Configure logging based on settings."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
    )
