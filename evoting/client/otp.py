"""
Phone OTP step-up verification.

Each signup, login or password reset owns a ``VerificationSession``; the
verifier keeps no state of its own, so concurrent flows never share a
pending code or a resend timer. Delivery is delegated to an ``OTPProvider``.
"""
import hashlib
import hmac
import logging
import math
import re
import secrets
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol, Tuple

from evoting.config import (
    COUNTRY_CODE,
    MOBILE_LENGTH,
    OTP_CODE_LENGTH,
    OTP_MAX_ATTEMPTS,
    OTP_RESEND_COOLDOWN_SECONDS,
    OTP_SESSION_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(rf"[0-9]{{{MOBILE_LENGTH}}}")
CODE_RE = re.compile(rf"[0-9]{{{OTP_CODE_LENGTH}}}")


class OTPError(Exception):
    def __init__(self, code: str, message: str, remaining_seconds: int = 0):
        super().__init__(message)
        self.code = code
        self.message = message
        self.remaining_seconds = remaining_seconds


class OTPProvider(Protocol):
    def send_code(self, phone_number: str) -> str:
        """Deliver a code to the E.164 number and return a verification handle."""

    def check_code(self, handle: str, code: str) -> bool:
        """True when the code matches the one delivered for the handle."""


class ConsoleOTPProvider:
    """
    Development provider: generates the code locally and writes it to the log
    instead of sending an SMS. Only the SHA-256 of each code is kept, and only
    until it expires; codes replaced by a resend or left unused are pruned on
    the next send.
    """

    def __init__(self, code_length: int = OTP_CODE_LENGTH, ttl: int = OTP_SESSION_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.code_length = code_length
        self.ttl = ttl
        self.clock = clock
        # handle -> (digest, expires_at)
        self._pending: Dict[str, Tuple[str, float]] = {}

    @staticmethod
    def _digest(code: str) -> str:
        return hashlib.sha256(code.encode()).hexdigest()

    def _prune(self, now: float) -> None:
        for handle in [h for h, (_, expires_at) in self._pending.items() if expires_at <= now]:
            del self._pending[handle]

    def send_code(self, phone_number: str) -> str:
        now = self.clock()
        self._prune(now)
        code = f"{secrets.randbelow(10 ** self.code_length):0{self.code_length}d}"
        handle = uuid.uuid4().hex
        self._pending[handle] = (self._digest(code), now + self.ttl)
        logger.info(f"OTP for {phone_number}: {code}")
        return handle

    def check_code(self, handle: str, code: str) -> bool:
        entry = self._pending.get(handle)
        if entry is None:
            return False
        expected, expires_at = entry
        if expires_at <= self.clock():
            del self._pending[handle]
            return False
        if not hmac.compare_digest(expected, self._digest(code)):
            return False
        del self._pending[handle]
        return True


@dataclass
class VerificationSession:
    phone_number: str
    handle: str
    created_at: float
    last_sent_at: float
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempts: int = 0
    verified: bool = False
    closed: bool = False


class OTPVerifier:
    def __init__(self, provider: OTPProvider,
                 cooldown: int = OTP_RESEND_COOLDOWN_SECONDS,
                 ttl: int = OTP_SESSION_TTL_SECONDS,
                 max_attempts: int = OTP_MAX_ATTEMPTS,
                 clock: Callable[[], float] = time.monotonic):
        self.provider = provider
        self.cooldown = cooldown
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.clock = clock

    def _send(self, mobile: str) -> Tuple[str, float]:
        if not PHONE_RE.fullmatch(mobile or ""):
            raise OTPError("INVALID_PHONE", f"Please enter a valid {MOBILE_LENGTH}-digit mobile number")
        handle = self.provider.send_code(f"{COUNTRY_CODE}{mobile}")
        return handle, self.clock()

    def start(self, mobile: str) -> VerificationSession:
        handle, now = self._send(mobile)
        logger.info(f"OTP session started for mobile ending {mobile[-4:]}")
        return VerificationSession(phone_number=mobile, handle=handle, created_at=now, last_sent_at=now)

    def remaining_cooldown(self, session: VerificationSession) -> int:
        remaining = self.cooldown - (self.clock() - session.last_sent_at)
        return max(0, math.ceil(remaining))

    def check_cooldown(self, session: VerificationSession) -> None:
        remaining = self.remaining_cooldown(session)
        if remaining:
            raise OTPError("RATE_LIMITED", f"Please wait {remaining} seconds before requesting another OTP",
                           remaining_seconds=remaining)

    def resend(self, session: VerificationSession) -> VerificationSession:
        if session.closed:
            raise OTPError("NO_SESSION", "No OTP verification in progress. Please request a new OTP.")
        self.check_cooldown(session)
        session.handle, session.last_sent_at = self._send(session.phone_number)
        # A fresh code gets a fresh expiry window and attempt budget
        session.created_at = session.last_sent_at
        session.attempts = 0
        return session

    def verify(self, session: Optional[VerificationSession], code: str) -> bool:
        if session is None or session.closed:
            raise OTPError("NO_SESSION", "No OTP verification in progress. Please request a new OTP.")
        if self.clock() - session.created_at > self.ttl:
            self.cancel(session)
            raise OTPError("SESSION_EXPIRED", "OTP has expired. Please request a new one.")

        clean = str(code).strip()
        if not CODE_RE.fullmatch(clean):
            raise OTPError("INVALID_OTP_FORMAT", f"Please enter a valid {OTP_CODE_LENGTH}-digit OTP")

        session.attempts += 1
        if not self.provider.check_code(session.handle, clean):
            if session.attempts >= self.max_attempts:
                self.cancel(session)
                raise OTPError("TOO_MANY_ATTEMPTS", "Too many failed attempts. Please request a new OTP.")
            raise OTPError("INVALID_CODE", "Invalid OTP. Please check the code and try again.")

        session.verified = True
        session.closed = True
        return True

    def cancel(self, session: Optional[VerificationSession]) -> None:
        if session is not None:
            session.closed = True
