# backend/playout/security/crypto_engine.py

import hashlib
import hmac
import os
import secrets
from enum import Enum
from typing import Optional, Union

from playout.config import PLAYER_TOKEN_SECRET
from playout.logging_config import get_logger

logger = get_logger(__name__)


class CryptoMode(str, Enum):
    """
    Digest used to store player secrets.
    - HMAC_SHA256: HMAC over SHA-256
    - HMAC_SHA3_256: HMAC over SHA3-256
    """
    HMAC_SHA256 = "HMAC_SHA256"
    HMAC_SHA3_256 = "HMAC_SHA3_256"


_DIGESTS = {
    CryptoMode.HMAC_SHA256: hashlib.sha256,
    CryptoMode.HMAC_SHA3_256: hashlib.sha3_256,
}


def _resolve_mode_from_env() -> CryptoMode:
    raw = os.getenv("CRYPTO_MODE", CryptoMode.HMAC_SHA256.value)
    try:
        return CryptoMode(raw)
    except ValueError:
        logger.warning("unsupported_crypto_mode", crypto_mode=raw, fallback=CryptoMode.HMAC_SHA256.value)
        return CryptoMode.HMAC_SHA256


class CryptoEngine:
    """
    Issues and checks player device secrets.

    The database only ever holds HMAC(server_key, secret); the plaintext
    secret is handed to the device once, at registration.
    """

    def __init__(
        self,
        mode: Union[CryptoMode, str, None] = None,
        server_key: Union[str, bytes, None] = None,
    ) -> None:
        if mode is None:
            mode = _resolve_mode_from_env()

        if isinstance(mode, str):
            try:
                mode = CryptoMode(mode)
            except ValueError as exc:
                raise ValueError(f"Unsupported CRYPTO_MODE: {mode}") from exc

        self.mode: CryptoMode = mode
        self._server_key = self._to_bytes(server_key if server_key is not None else PLAYER_TOKEN_SECRET)

    @staticmethod
    def _to_bytes(value: Union[str, bytes]) -> bytes:
        if isinstance(value, bytes):
            return value
        return value.encode("utf-8")

    @staticmethod
    def issue_secret(nbytes: int = 32) -> str:
        """New random device secret, hex encoded (64 chars for 32 bytes)."""
        return secrets.token_hex(nbytes)

    def digest_token(self, token: str) -> str:
        mac = hmac.new(self._server_key, self._to_bytes(token), digestmod=_DIGESTS[self.mode])
        return mac.hexdigest()

    def verify_token(self, token: str, stored_digest: Optional[str]) -> bool:
        """Constant-time check of a presented secret against the stored digest."""
        if not token or not stored_digest:
            return False
        return hmac.compare_digest(self.digest_token(token), stored_digest)

    @staticmethod
    def keys_match(presented: Optional[str], expected: Optional[str]) -> bool:
        """Constant-time comparison for shared API keys."""
        if not presented or not expected:
            return False
        return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


_engine_singleton: Optional[CryptoEngine] = None


def get_crypto_engine() -> CryptoEngine:
    global _engine_singleton
    if _engine_singleton is None:
        _engine_singleton = CryptoEngine()
    return _engine_singleton
