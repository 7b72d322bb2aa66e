from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    # validation
    INVALID_IDENTITY = "InvalidIdentity"
    INVALID_INPUT = "InvalidInput"
    MISSING_IDENTITY = "MissingIdentity"
    # rate limiting
    RATE_LIMITED = "RateLimited"
    TOO_SOON = "TooSoon"
    # code lifecycle
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    MISMATCH = "Mismatch"
    # collaborators
    NOTIFIER_FAILURE = "NotifierFailure"
    STORE_FAILURE = "StoreFailure"


HTTP_STATUS = {
    ErrorKind.INVALID_IDENTITY: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.MISSING_IDENTITY: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TOO_SOON: 429,
    ErrorKind.NOT_FOUND: 400,
    ErrorKind.EXPIRED: 400,
    ErrorKind.MISMATCH: 400,
    ErrorKind.NOTIFIER_FAILURE: 502,
    ErrorKind.STORE_FAILURE: 502,
}


class RegistrationError(Exception):
    """Base for every failure an operation reports back to its caller."""

    def __init__(self, kind: ErrorKind, detail: str, *, retry_after: Optional[int] = None) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail
        self.retry_after = retry_after

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class OtpError(RegistrationError):
    pass


class SubmissionError(RegistrationError):
    pass


# Raised by collaborators; operations translate these into the kinds above.
class DeliveryError(Exception):
    pass


class StoreError(Exception):
    pass
