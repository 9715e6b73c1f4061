"""
One-time codes for email verification.
Codes live in process memory keyed by normalized email; issuing a new code replaces
the previous one and a successful validation consumes it.
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpChallenge:
    code: str
    expires_at: float


class OtpService:
    def __init__(
        self,
        ttl_seconds: int = 600,
        length: int = 6,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.length = length
        self._clock = clock
        self._lock = threading.Lock()
        self._challenges: Dict[str, OtpChallenge] = {}

    def generate_code(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.length))

    def issue(self, email: str) -> str:
        code = self.generate_code()
        with self._lock:
            self._challenges[email] = OtpChallenge(code=code, expires_at=self._clock() + self.ttl_seconds)
        return code

    def _active(self, email: str) -> Optional[OtpChallenge]:
        challenge = self._challenges.get(email)
        if challenge and challenge.expires_at <= self._clock():
            del self._challenges[email]
            return None
        return challenge

    def validate(self, email: str, code: str) -> bool:
        """True and consume the code if it matches the active challenge for this email."""
        if not code:
            return False
        with self._lock:
            challenge = self._active(email)
            if not challenge:
                logger.info("OTP validation for %s: no active code", email)
                return False
            if not secrets.compare_digest(challenge.code.encode(), code.strip().encode()):
                logger.info("OTP validation for %s: mismatch", email)
                return False
            del self._challenges[email]
        return True

    def has_active(self, email: str) -> bool:
        with self._lock:
            return self._active(email) is not None


@lru_cache
def get_otp_service() -> OtpService:
    return OtpService(ttl_seconds=settings.otp_ttl_minutes * 60, length=settings.otp_length)
