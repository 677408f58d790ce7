"""
OCR Providers - Text Recognition Collaborators
==============================================

The scan pipeline only needs RecognizeText(frame) -> RawText. Providers
wrap an OCR engine behind that interface:

- PaddleOCR (default, local)
- Any other engine by subclassing OCRProvider and registering it

Usage:
    from vin_inventory.providers import OCRProviderFactory

    provider = OCRProviderFactory.create("paddleocr")
    result = provider.recognize("frame.jpg")
    print(result.text, result.confidence)
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import cv2
import numpy as np

from ..config import get_config

logger = logging.getLogger(__name__)

Frame = Union[str, Path, np.ndarray]


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class OCRProviderType(str, Enum):
    """Supported OCR provider types."""
    PADDLEOCR = "paddleocr"


@dataclass
class OCRResult:
    """
    Standardized OCR result across all providers.

    Attributes:
        text: Recognized text, one line per detected text region
        confidence: Confidence score (0.0 to 1.0)
        raw_response: Provider-specific raw response for debugging
        bounding_boxes: List of detected text regions (optional)
        provider: Name of the OCR provider used
    """
    text: str
    confidence: float
    raw_response: Any = None
    bounding_boxes: List[Dict[str, Any]] = field(default_factory=list)
    provider: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "provider": self.provider,
            "bounding_boxes": self.bounding_boxes,
        }


@dataclass
class ProviderConfig:
    """Base configuration for OCR providers."""
    max_retries: int = 1
    retry_delay: float = 0.5  # seconds


@dataclass
class PaddleOCRConfig(ProviderConfig):
    """PaddleOCR-specific configuration."""
    lang: str = "en"
    use_gpu: bool = False
    det_db_box_thresh: float = 0.3
    ocr_version: str = "PP-OCRv3"  # PP-OCRv3 works better for VIN plates


class OCRProviderError(Exception):
    """Base exception for OCR provider errors."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.provider = provider
        self.details = details or {}
        super().__init__(f"[{provider}] {message}")


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class OCRProvider(ABC):
    """
    Abstract base class for OCR providers.

    The scan session calls recognize() from a worker thread, one frame at
    a time.
    """

    _initialized: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is available and properly configured."""
        ...

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the OCR engine.

        Raises:
            OCRProviderError: If initialization fails
        """
        ...

    @abstractmethod
    def recognize(self, image: Frame, **kwargs) -> OCRResult:
        """
        Recognize text from an image.

        Args:
            image: Image path or numpy array (BGR format)

        Returns:
            OCRResult with recognized text and confidence

        Raises:
            OCRProviderError: If recognition fails
        """
        ...

    def recognize_with_retry(self, image: Frame, **kwargs) -> OCRResult:
        """
        Recognize text with retry/backoff using provider config.
        """
        config = getattr(self, "config", None)
        max_retries = getattr(config, "max_retries", 1) or 1
        retry_delay = getattr(config, "retry_delay", 0.0) or 0.0

        for attempt in range(max_retries):
            try:
                return self.recognize(image, **kwargs)
            except OCRProviderError as exc:
                if attempt >= max_retries - 1:
                    raise
                sleep_for = retry_delay * (2 ** attempt)
                logger.warning(
                    "Retrying OCR provider %s after error (attempt %d/%d, sleep %.2fs): %s",
                    self.name,
                    attempt + 1,
                    max_retries,
                    sleep_for,
                    exc,
                )
                if sleep_for > 0:
                    time.sleep(sleep_for)

        raise OCRProviderError("Recognition failed without exception", provider=self.name)

    def _load_image(self, image: Frame) -> np.ndarray:
        """
        Load image from path or return numpy array.

        Raises:
            OCRProviderError: If image cannot be loaded
        """
        if isinstance(image, np.ndarray):
            return image

        path = Path(image)
        if not path.exists():
            raise OCRProviderError(f"Image file not found: {path}", provider=self.name)

        img = cv2.imread(str(path))
        if img is None:
            raise OCRProviderError(f"Failed to load image: {path}", provider=self.name)

        return img


# =============================================================================
# PADDLEOCR PROVIDER
# =============================================================================

class PaddleOCRProvider(OCRProvider):
    """
    PaddleOCR-based text recognition provider.

    Local processing, no API calls. The engine is created lazily on the
    first recognize() so constructing the provider stays cheap.
    """

    def __init__(self, config: Optional[PaddleOCRConfig] = None):
        self.config = config or PaddleOCRConfig()
        self._ocr = None
        self._initialized = False

    @property
    def name(self) -> str:
        return "PaddleOCR"

    @property
    def is_available(self) -> bool:
        """Check if PaddleOCR is installed."""
        try:
            from paddleocr import PaddleOCR  # noqa: F401
            return True
        except ImportError:
            return False

    def initialize(self) -> None:
        """Initialize PaddleOCR engine."""
        if self._initialized:
            return

        if not self.is_available:
            raise OCRProviderError(
                "PaddleOCR is not installed. Run: pip install 'vin-inventory-scanner[ocr]'",
                provider=self.name
            )

        try:
            from paddleocr import PaddleOCR

            logger.info(f"Initializing PaddleOCR with {self.config.ocr_version}...")
            self._ocr = PaddleOCR(
                lang=self.config.lang,
                ocr_version=self.config.ocr_version,
                device="gpu" if self.config.use_gpu else "cpu",
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                use_textline_orientation=False,
                text_det_box_thresh=self.config.det_db_box_thresh,
            )
            self._initialized = True
            logger.info(f"PaddleOCR ({self.config.ocr_version}) initialized successfully")

        except Exception as e:
            raise OCRProviderError(
                f"Failed to initialize PaddleOCR: {e}",
                provider=self.name,
                details={"error": str(e)}
            ) from e

    def recognize(self, image: Frame, **kwargs) -> OCRResult:
        """Recognize text using PaddleOCR."""
        if not self._initialized:
            self.initialize()

        img = self._load_image(image)

        try:
            result = self._ocr.predict(img)
        except Exception as e:
            raise OCRProviderError(
                f"OCR prediction failed: {e}",
                provider=self.name,
                details={"error": str(e)}
            ) from e

        text, confidence, boxes = self._parse_result(result)

        return OCRResult(
            text=text,
            confidence=confidence,
            raw_response=result,
            bounding_boxes=boxes,
            provider=self.name,
        )

    def _parse_result(self, result: Any) -> Tuple[str, float, List[Dict]]:
        """Parse PaddleOCR v3.x result format (list of dicts)."""
        if not result:
            return "", 0.0, []

        if isinstance(result, list):
            result = result[0]

        if not isinstance(result, dict) and hasattr(result, "get"):
            result = dict(result)

        if isinstance(result, dict):
            texts = list(result.get('rec_texts', []))
            scores = list(result.get('rec_scores', []))
            dt_polys = result.get('dt_polys', [])

            if texts:
                full_text = '\n'.join(texts)
                avg_score = float(np.mean(scores)) if scores else 0.0

                boxes = []
                for i, poly in enumerate(dt_polys):
                    boxes.append({
                        "text": texts[i] if i < len(texts) else "",
                        "confidence": float(scores[i]) if i < len(scores) else 0.0,
                        "polygon": poly.tolist() if hasattr(poly, 'tolist') else poly
                    })

                return full_text, avg_score, boxes

        return "", 0.0, []


# =============================================================================
# FACTORY
# =============================================================================

class OCRProviderFactory:
    """Creates OCR providers by name."""

    _providers: Dict[str, Type[OCRProvider]] = {
        OCRProviderType.PADDLEOCR.value: PaddleOCRProvider,
    }

    @classmethod
    def create(
        cls,
        provider_type: Union[str, OCRProviderType] = OCRProviderType.PADDLEOCR,
        config: Optional[ProviderConfig] = None,
    ) -> OCRProvider:
        """
        Create an OCR provider.

        Args:
            provider_type: Registered provider name
            config: Provider configuration (PaddleOCR: built from global config if None)

        Raises:
            ValueError: If the provider type is unknown
        """
        key = provider_type.value if isinstance(provider_type, OCRProviderType) else str(provider_type).lower()
        if key not in cls._providers:
            raise ValueError(f"Unknown OCR provider: {provider_type}. Available: {cls.list_available()}")

        provider_class = cls._providers[key]
        if provider_class is PaddleOCRProvider and config is None:
            config = cls._paddle_config_from_settings()

        logger.debug(f"Creating OCR provider {key}")
        return provider_class(config) if config is not None else provider_class()

    @staticmethod
    def _paddle_config_from_settings() -> PaddleOCRConfig:
        settings = get_config().ocr
        return PaddleOCRConfig(
            lang=settings.language,
            use_gpu=settings.use_gpu,
            det_db_box_thresh=settings.det_db_box_thresh,
            ocr_version=settings.ocr_version,
        )

    @classmethod
    def list_available(cls) -> List[str]:
        return sorted(cls._providers)

    @classmethod
    def register(cls, name: str, provider_class: Type[OCRProvider]) -> None:
        """Register a custom provider class."""
        if not issubclass(provider_class, OCRProvider):
            raise TypeError(f"{provider_class!r} is not an OCRProvider")
        cls._providers[name.lower()] = provider_class
