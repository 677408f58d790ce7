"""
Submission Outcomes
===================

Every stage of the scan pipeline reports a SubmissionResult instead of
raising past collaborator boundaries. The status tells the caller which
class of outcome occurred:

    SUCCESS               2xx, JSON body, status == "success"
    LOCATION_UNAVAILABLE  no fix could be obtained, nothing was sent
    NETWORK_FAILURE       transport error, timeout, DNS, refused connection
    SERVER_REJECTED       HTTP response with a non-2xx code
    EMPTY_RESPONSE_BODY   2xx but body missing or unparseable
    APPLICATION_FAILURE   body parsed, status != "success"
    INVALID_VIN_FORMAT    OCR text holds no syntactically valid VIN
    DUPLICATE_SUPPRESSED  VIN was submitted within the cooldown window
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SubmissionStatus(str, Enum):
    """Discriminator of SubmissionResult."""
    SUCCESS = "success"
    LOCATION_UNAVAILABLE = "location_unavailable"
    NETWORK_FAILURE = "network_failure"
    SERVER_REJECTED = "server_rejected"
    EMPTY_RESPONSE_BODY = "empty_response_body"
    APPLICATION_FAILURE = "application_failure"
    INVALID_VIN_FORMAT = "invalid_vin_format"
    DUPLICATE_SUPPRESSED = "duplicate_suppressed"


# Outcomes that say nothing about the VIN itself; a later read may succeed
TRANSIENT_STATUSES = frozenset({
    SubmissionStatus.LOCATION_UNAVAILABLE,
    SubmissionStatus.NETWORK_FAILURE,
    SubmissionStatus.SERVER_REJECTED,
    SubmissionStatus.EMPTY_RESPONSE_BODY,
})


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of one submission.

    Attributes:
        status: Outcome class
        vin: Candidate the outcome refers to (normalized text when invalid)
        message: Server message on success/application failure, else a description
        http_code: HTTP status code when a response was received
        cause: Exception behind a network failure
        attempts: HTTP requests issued (0 when nothing was sent)
    """
    status: SubmissionStatus
    vin: str = ""
    message: str = ""
    http_code: Optional[int] = None
    cause: Optional[BaseException] = None
    attempts: int = 0

    @property
    def is_success(self) -> bool:
        return self.status is SubmissionStatus.SUCCESS

    @property
    def is_transient(self) -> bool:
        """Failure that a later read of the same VIN may not repeat."""
        return self.status in TRANSIENT_STATUSES

    @property
    def is_retryable(self) -> bool:
        """Failure worth retrying immediately: transport errors and 5xx responses."""
        if self.status is SubmissionStatus.NETWORK_FAILURE:
            return True
        if self.status is SubmissionStatus.SERVER_REJECTED:
            return self.http_code is not None and 500 <= self.http_code < 600
        return False

    def with_attempts(self, attempts: int) -> 'SubmissionResult':
        return SubmissionResult(
            status=self.status,
            vin=self.vin,
            message=self.message,
            http_code=self.http_code,
            cause=self.cause,
            attempts=attempts,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "vin": self.vin,
            "message": self.message,
            "http_code": self.http_code,
            "cause": None if self.cause is None else repr(self.cause),
            "attempts": self.attempts,
        }

    # Constructors named after the outcome classes

    @classmethod
    def success(cls, vin: str, message: str, http_code: int) -> 'SubmissionResult':
        return cls(SubmissionStatus.SUCCESS, vin=vin, message=message, http_code=http_code)

    @classmethod
    def location_unavailable(cls, vin: str, cause: Optional[BaseException] = None) -> 'SubmissionResult':
        return cls(SubmissionStatus.LOCATION_UNAVAILABLE, vin=vin,
                   message="location unavailable", cause=cause)

    @classmethod
    def network_failure(cls, vin: str, cause: BaseException) -> 'SubmissionResult':
        return cls(SubmissionStatus.NETWORK_FAILURE, vin=vin,
                   message=str(cause) or type(cause).__name__, cause=cause)

    @classmethod
    def server_rejected(cls, vin: str, http_code: int) -> 'SubmissionResult':
        return cls(SubmissionStatus.SERVER_REJECTED, vin=vin,
                   message=f"HTTP {http_code}", http_code=http_code)

    @classmethod
    def empty_response_body(cls, vin: str, http_code: int) -> 'SubmissionResult':
        return cls(SubmissionStatus.EMPTY_RESPONSE_BODY, vin=vin,
                   message="response body is empty or unparseable", http_code=http_code)

    @classmethod
    def application_failure(cls, vin: str, message: str, http_code: int) -> 'SubmissionResult':
        return cls(SubmissionStatus.APPLICATION_FAILURE, vin=vin, message=message, http_code=http_code)

    @classmethod
    def invalid_vin_format(cls, text: str) -> 'SubmissionResult':
        return cls(SubmissionStatus.INVALID_VIN_FORMAT, vin=text, message="not a VIN")

    @classmethod
    def duplicate_suppressed(cls, vin: str) -> 'SubmissionResult':
        return cls(SubmissionStatus.DUPLICATE_SUPPRESSED, vin=vin,
                   message="submitted recently, suppressed")
