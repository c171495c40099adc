from __future__ import annotations

import hmac
import logging
import secrets
from typing import Protocol

from ..core.constants import DEFAULT_OTP_TTL_SECONDS, OTP_LENGTH
from ..core.enums import OtpPurpose

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """The subset of the redis client API the OTP store relies on."""

    def setex(self, name: str, time: int, value: str): ...

    def get(self, name: str): ...

    def delete(self, *names: str): ...


class OtpStore:
    """One-time codes keyed by (purpose, email) in a TTL key-value store.

    Codes expire after `ttl_seconds` and are deleted once verified.
    """

    def __init__(self, client: KeyValueStore, *, ttl_seconds: int = DEFAULT_OTP_TTL_SECONDS, prefix: str = "otp"):
        self._client = client
        self._ttl = int(ttl_seconds)
        self._prefix = prefix

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def _key(self, purpose: OtpPurpose, email: str) -> str:
        return f"{self._prefix}:{purpose.value}:{email.strip().lower()}"

    def issue(self, purpose: OtpPurpose, email: str) -> str:
        code = "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))
        self._client.setex(self._key(purpose, email), self._ttl, code)
        logger.info("Issued %s code for %s (ttl=%ss)", purpose.value, email, self._ttl)
        return code

    def verify(self, purpose: OtpPurpose, email: str, code: str) -> bool:
        key = self._key(purpose, email)
        stored = self._client.get(key)
        if stored is None:
            return False
        if isinstance(stored, bytes):
            stored = stored.decode("utf-8")

        if not hmac.compare_digest(str(stored), str(code or "").strip()):
            return False

        self._client.delete(key)
        return True
