from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from datetime import timedelta
from typing import Any, Callable, Optional

from photocap.logging import get_logger
from photocap.service.errors import ConfigurationError

logger = get_logger(__name__)

_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(Exception):
    """Base class for session token verification failures."""


class InvalidSignature(TokenError):
    """Token is malformed, uses another algorithm, or its signature does not match."""


class Expired(TokenError):
    """Token signature is valid but its expiry has passed."""


def _encode_segment(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _decode_segment(segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _dump(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode()


class TokenCodec:
    """Issue and verify HS256 session tokens.

    Tokens are stateless: the signed claim set is the whole session. ``clock``
    returns epoch seconds and is swapped out in tests to move time forward.
    """

    def __init__(
        self,
        secret: Optional[str],
        *,
        clock: Optional[Callable[[], float]] = None,
        leeway_seconds: int = 0,
    ) -> None:
        if not secret:
            raise ConfigurationError("token signing secret is not configured")
        self._key = secret.encode()
        self.clock = clock or time.time
        self.leeway_seconds = leeway_seconds

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._key, signing_input.encode(), hashlib.sha256).digest()
        return _encode_segment(digest)

    def issue(self, claims: dict[str, Any], ttl: timedelta) -> str:
        issued_at = int(self.clock())
        payload = {
            **claims,
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
        }
        signing_input = f"{_encode_segment(_dump(_HEADER))}.{_encode_segment(_dump(payload))}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def verify(self, token: str) -> dict[str, Any]:
        try:
            header_b64, payload_b64, sig_b64 = token.split(".")
        except (AttributeError, ValueError):
            raise InvalidSignature("malformed token")

        try:
            header = json.loads(_decode_segment(header_b64))
        except (ValueError, TypeError):
            logger.warning("jwt_header_decode_failed")
            raise InvalidSignature("undecodable header")
        if not isinstance(header, dict) or header.get("alg") != "HS256":
            logger.warning(
                "jwt_invalid_algorithm",
                alg=header.get("alg") if isinstance(header, dict) else None,
            )
            raise InvalidSignature("unsupported algorithm")

        expected_sig = self._sign(f"{header_b64}.{payload_b64}")
        try:
            matches = hmac.compare_digest(expected_sig, sig_b64)
        except TypeError:
            # non-ASCII signature text
            matches = False
        if not matches:
            raise InvalidSignature("signature mismatch")

        try:
            payload = json.loads(_decode_segment(payload_b64))
        except (ValueError, TypeError) as exc:
            logger.warning("jwt_payload_decode_failed", error=str(exc))
            raise InvalidSignature("undecodable payload")
        if not isinstance(payload, dict):
            raise InvalidSignature("payload is not an object")

        try:
            exp_ts = float(payload["exp"])
        except (KeyError, TypeError, ValueError):
            raise InvalidSignature("missing expiry")
        if self.clock() > exp_ts + self.leeway_seconds:
            raise Expired("token expired")
        return payload


__all__ = ["TokenCodec", "TokenError", "InvalidSignature", "Expired"]
