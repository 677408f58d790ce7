"""
VIN Utilities - Single Source of Truth
======================================

OCR text normalization and VIN syntax checks shared by the submission
pipeline and the CLI.

OCR on VIN plates frequently confuses digits with the letters VINs never
use (I, O, Q), so raw text is first mapped through a fixed substitution
table and then checked against the ISO 3779 format before anything is
sent over the network.
"""

import re
import logging
from typing import Optional, Dict, List, Tuple, FrozenSet
from dataclasses import dataclass

logger = logging.getLogger(__name__)


# =============================================================================
# VIN CONSTANTS
# =============================================================================

class VINConstants:
    """Immutable VIN specification constants per ISO 3779 / NHTSA."""

    LENGTH: int = 17

    # Valid characters (I, O, Q excluded to avoid confusion with 1, 0)
    VALID_CHARS: FrozenSet[str] = frozenset("0123456789ABCDEFGHJKLMNPRSTUVWXYZ")
    INVALID_CHARS: FrozenSet[str] = frozenset("IOQ")

    CHECK_DIGIT_POSITION: int = 9

    # Checksum weights by position (NHTSA standard)
    CHECKSUM_WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

    # Character to value mapping for checksum (ISO 3779)
    CHAR_VALUES: Dict[str, int] = {
        'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
        'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
        'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
        '0': 0, '1': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9
    }


VIN_LENGTH = VINConstants.LENGTH
VIN_VALID_CHARS = VINConstants.VALID_CHARS
VIN_INVALID_CHARS = VINConstants.INVALID_CHARS


# =============================================================================
# OCR TEXT NORMALIZATION
# =============================================================================

# Glyphs OCR confuses with the digits a VIN may contain.
# Every target is a digit, so applying the table twice changes nothing.
OCR_SUBSTITUTIONS: Dict[str, str] = {
    'I': '1', 'i': '1',
    'o': '0', 'O': '0',
    'Q': '9',
    's': '5', 'S': '5',
}

_SUBSTITUTION_TABLE = str.maketrans(OCR_SUBSTITUTIONS)

_TOKEN_SPLIT = re.compile(r'[^0-9A-Za-z]+')
_DIGIT = re.compile(r"[0-9]")

# OCR rarely splits one VIN plate line into more words than this
MAX_VIN_FRAGMENTS = 3


def normalize_ocr_text(raw_text: str) -> str:
    """
    Map OCR-confusable glyphs onto the characters a VIN allows.

    Substitutions are context-free: I/i -> 1, o/O -> 0, Q -> 9, s/S -> 5.
    Every other character (whitespace, punctuation, lowercase letters)
    passes through unchanged, so the result has the same length as the
    input. The function never rejects; use extract_vin_candidate() or
    validate_vin() to decide whether the result is a VIN.

    Args:
        raw_text: Text recognized from a single frame

    Returns:
        Normalized text of the same length

    Examples:
        >>> normalize_ocr_text("1HGCM82633A1O4352")
        '1HGCM82633A104352'
        >>> normalize_ocr_text("")
        ''
    """
    return raw_text.translate(_SUBSTITUTION_TABLE)


def extract_vin_candidate(text: str) -> Optional[str]:
    """
    Find a syntactically valid VIN in normalized OCR text.

    Strategy:
    1. Each alphanumeric token, in reading order
    2. A VIN split by OCR into a few fragments: at most
       MAX_VIN_FRAGMENTS whitespace-separated words, each holding a digit,
       that together make up the whole text

    Unrelated label words are never glued together.

    Args:
        text: Output of normalize_ocr_text()

    Returns:
        17-character uppercase VIN, or None if the text holds no valid VIN
    """
    if not text:
        return None

    upper = text.upper()
    for token in _TOKEN_SPLIT.split(upper):
        if len(token) == VIN_LENGTH and validate_vin_format(token):
            return token

    fragments = upper.split()
    if 1 < len(fragments) <= MAX_VIN_FRAGMENTS and all(_DIGIT.search(f) for f in fragments):
        joined = ''.join(fragments)
        if validate_vin_format(joined):
            return joined

    return None


# =============================================================================
# VIN VALIDATION
# =============================================================================

@dataclass
class VINValidationResult:
    """Result of VIN validation."""
    vin: str
    is_valid_length: bool
    has_valid_chars: bool
    invalid_chars: List[str]
    checksum_valid: bool
    expected_check_digit: Optional[str]

    @property
    def is_valid_format(self) -> bool:
        """Length and character set are valid (checksum not required)."""
        return self.is_valid_length and self.has_valid_chars

    def to_dict(self) -> Dict:
        return {
            'vin': self.vin,
            'is_valid_length': self.is_valid_length,
            'has_valid_chars': self.has_valid_chars,
            'invalid_chars': self.invalid_chars,
            'checksum_valid': self.checksum_valid,
            'expected_check_digit': self.expected_check_digit,
            'is_valid_format': self.is_valid_format,
        }


def validate_vin(vin: str) -> VINValidationResult:
    """
    Comprehensive VIN validation.

    Checks:
    1. Length (must be 17)
    2. Character validity (no I, O, Q, only A-Z and 0-9)
    3. Checksum at position 9 (informational, only North American
       VINs are required to carry a check digit)

    Args:
        vin: VIN string to validate

    Returns:
        VINValidationResult with all validation details
    """
    vin = vin.upper().strip()

    is_valid_length = len(vin) == VIN_LENGTH

    invalid_chars = [c for c in vin if c not in VIN_VALID_CHARS]
    has_valid_chars = len(invalid_chars) == 0

    checksum_valid = False
    expected_check_digit = None

    if is_valid_length and has_valid_chars:
        expected_check_digit = calculate_check_digit(vin)
        if expected_check_digit:
            checksum_valid = vin[8] == expected_check_digit

    return VINValidationResult(
        vin=vin,
        is_valid_length=is_valid_length,
        has_valid_chars=has_valid_chars,
        invalid_chars=invalid_chars,
        checksum_valid=checksum_valid,
        expected_check_digit=expected_check_digit,
    )


def validate_vin_format(vin: str) -> bool:
    """
    Quick check if VIN has valid format (length and characters).

    Does NOT check checksum. Use validate_vin() for full validation.

    Args:
        vin: VIN string to check

    Returns:
        True if format is valid (17 chars, no I/O/Q)
    """
    vin = vin.upper().strip()
    if len(vin) != VIN_LENGTH:
        return False
    return all(c in VIN_VALID_CHARS for c in vin)


def calculate_check_digit(vin: str) -> Optional[str]:
    """
    Calculate the expected check digit for a VIN.

    The check digit (position 9) is calculated by:
    1. Assigning numeric values to each character
    2. Multiplying by position weights
    3. Summing and taking mod 11
    4. Result 10 becomes 'X'

    Args:
        vin: 17-character VIN (check digit position will be ignored)

    Returns:
        Expected check digit ('0'-'9' or 'X'), or None if calculation fails
    """
    if len(vin) != VIN_LENGTH:
        return None

    vin = vin.upper()

    total = 0
    for i, char in enumerate(vin):
        if i == 8:  # Skip check digit position
            continue
        value = VINConstants.CHAR_VALUES.get(char)
        if value is None:
            return None
        total += value * VINConstants.CHECKSUM_WEIGHTS[i]

    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate_checksum(vin: str) -> bool:
    """
    Validate VIN checksum at position 9.

    Args:
        vin: 17-character VIN to validate

    Returns:
        True if checksum is valid, False otherwise
    """
    expected = calculate_check_digit(vin)
    if expected is None:
        return False

    return vin[8].upper() == expected
