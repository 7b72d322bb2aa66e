from __future__ import annotations

import logging
import math
import re
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from ..config import Settings
from ..domain.errors import DeliveryError, ErrorKind, OtpError

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DIGITS = "0123456789"


class Notifier(Protocol):
    async def send_code(self, email: str, code: str) -> None: ...


@dataclass
class OtpRecord:
    window_started_at: float
    code: Optional[str] = None
    expires_at: float = 0.0
    last_issued_at: Optional[float] = None
    issued_in_window: int = 0


@dataclass(frozen=True)
class OtpPolicy:
    code_length: int = 6
    ttl_seconds: int = 600
    window_seconds: int = 900
    max_per_window: int = 5
    min_resend_interval_seconds: int = 60

    @classmethod
    def from_settings(cls, s: Settings) -> "OtpPolicy":
        return cls(
            code_length=s.OTP_LENGTH,
            ttl_seconds=s.OTP_TTL_SECONDS,
            window_seconds=s.OTP_RATE_LIMIT_WINDOW_SECONDS,
            max_per_window=s.OTP_MAX_PER_WINDOW,
            min_resend_interval_seconds=s.OTP_MIN_RESEND_INTERVAL_SECONDS,
        )


def validate_identity(raw: Optional[str]) -> str:
    """Normalize an email used as OTP identity, or raise InvalidIdentity."""
    email = str(raw or "").strip().lower()
    if not email or not EMAIL_RE.match(email):
        raise OtpError(ErrorKind.INVALID_IDENTITY, "Invalid email")
    return email


def generate_code(length: int) -> str:
    return "".join(secrets.choice(DIGITS) for _ in range(length))


def _seconds_left(until: float, now: float) -> int:
    return max(1, math.ceil(until - now))


class OtpManager:
    """Owns per-identity OTP state: issuance limits, expiry and single use.

    Built once per app and kept on ``app.state``. Records live for the
    process lifetime; expiry is evaluated lazily in :meth:`verify`.
    """

    def __init__(
        self,
        policy: OtpPolicy,
        notifier: Notifier,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = policy
        self._notifier = notifier
        self._clock = clock
        self._records: Dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    def _reserve(self, identity: str) -> str:
        p = self.policy
        now = self._clock()
        with self._lock:
            rec = self._records.get(identity)
            if rec is None:
                rec = OtpRecord(window_started_at=now)
                self._records[identity] = rec

            if now - rec.window_started_at > p.window_seconds:
                rec.window_started_at = now
                rec.issued_in_window = 0

            if rec.issued_in_window >= p.max_per_window:
                raise OtpError(
                    ErrorKind.RATE_LIMITED,
                    "Too many OTP requests. Try later.",
                    retry_after=_seconds_left(rec.window_started_at + p.window_seconds, now),
                )

            if rec.last_issued_at is not None and now - rec.last_issued_at < p.min_resend_interval_seconds:
                raise OtpError(
                    ErrorKind.TOO_SOON,
                    "Please wait before requesting another OTP.",
                    retry_after=_seconds_left(rec.last_issued_at + p.min_resend_interval_seconds, now),
                )

            code = generate_code(p.code_length)
            rec.code = code
            rec.expires_at = now + p.ttl_seconds
            rec.last_issued_at = now
            rec.issued_in_window += 1
            return code

    async def issue(self, identity: str) -> None:
        code = self._reserve(identity)
        # the attempt stays counted even if delivery fails
        try:
            await self._notifier.send_code(identity, code)
        except DeliveryError as exc:
            logger.exception("otp_delivery_failed", extra={"extra": f"identity={identity}"})
            raise OtpError(ErrorKind.NOTIFIER_FAILURE, "Failed to send OTP") from exc
        logger.info("otp_issued", extra={"extra": f"identity={identity}"})

    def verify(self, identity: str, candidate: Optional[str]) -> None:
        if not identity or candidate is None or str(candidate) == "":
            raise OtpError(ErrorKind.INVALID_INPUT, "email and otp required")
        candidate = str(candidate)
        now = self._clock()
        with self._lock:
            rec = self._records.get(identity)
            if rec is None or rec.code is None:
                raise OtpError(ErrorKind.NOT_FOUND, "OTP not found. Request a new one.")
            if now > rec.expires_at:
                raise OtpError(ErrorKind.EXPIRED, "OTP expired. Request a new one.")
            if not secrets.compare_digest(candidate.encode(), rec.code.encode()):
                raise OtpError(ErrorKind.MISMATCH, "Invalid OTP")
            rec.code = None
        logger.info("otp_verified", extra={"extra": f"identity={identity}"})

    def record_for(self, identity: str) -> Optional[OtpRecord]:
        with self._lock:
            return self._records.get(identity)
