# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Access token decoding and verification.

Requests reach the farm through an authenticating edge proxy that forwards
the platform's compact access token (``header.payload.signature``) in the
``X-Forwarded-Access-Token`` header.  The payload is base64url-encoded JSON
carrying at least ``userId``.

Signature verification is a separate, pluggable step: the default
``TrustedProxyVerifier`` relies on the proxy, ``HmacSha256Verifier``
checks HS256 signatures and expiry locally.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol


ACCESS_TOKEN_HEADER = "X-Forwarded-Access-Token"


class InvalidAccessToken(Exception):
    """Raised when an access token is missing, malformed or rejected."""


@dataclass(frozen=True)
class AccessClaims:
    """Identity claims decoded from an access token.

    Attributes:
        user_id: The platform user ID (``userId``).
        issued_at: Issue time (``iat``), seconds since epoch.
        expires_at: Expiry time (``exp``), seconds since epoch.
        payload: The full decoded payload.
    """

    user_id: str
    issued_at: int | None = None
    expires_at: int | None = None
    payload: dict[str, Any] = field(default_factory=dict, repr=False)


class TokenVerifier(Protocol):
    """Checks that a decoded token may be trusted."""

    def verify(self, token: str, claims: AccessClaims) -> None:
        """Raise ``InvalidAccessToken`` if the token must be rejected."""
        ...


class TrustedProxyVerifier:
    """Accepts every well-formed token.

    The edge proxy in front of the farm has already validated the
    token's signature before forwarding it.
    """

    def verify(self, token: str, claims: AccessClaims) -> None:
        del token, claims


class HmacSha256Verifier:
    """Verifies HS256-signed tokens and their expiry."""

    def __init__(
        self,
        secret: str,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("HS256 secret cannot be empty")
        self._secret = secret.encode()
        self._leeway = leeway
        self._clock = clock

    def verify(self, token: str, claims: AccessClaims) -> None:
        header_b64, payload_b64, signature_b64 = token.split(".")
        header = _decode_segment(header_b64)
        if header.get("alg") != "HS256":
            raise InvalidAccessToken(
                f"Unsupported token algorithm: {header.get('alg')!r}"
            )

        expected = hmac.new(
            self._secret,
            f"{header_b64}.{payload_b64}".encode(),
            hashlib.sha256,
        ).digest()
        if not hmac.compare_digest(expected, _b64decode(signature_b64)):
            raise InvalidAccessToken("Token signature mismatch")

        if (
            claims.expires_at is not None
            and claims.expires_at + self._leeway < self._clock()
        ):
            raise InvalidAccessToken("Token has expired")


def _b64decode(segment: str) -> bytes:
    """Decode a base64url segment, tolerating missing padding."""
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as e:
        raise InvalidAccessToken(f"Invalid base64 segment: {e}") from e


def _decode_segment(segment: str) -> dict[str, Any]:
    """Decode a base64url JSON object segment."""
    try:
        data = json.loads(_b64decode(segment))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidAccessToken(f"Invalid JSON segment: {e}") from e
    if not isinstance(data, dict):
        raise InvalidAccessToken("Token segment is not a JSON object")
    return data


def _optional_int(payload: dict[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAccessToken(f"Claim '{key}' is not a number")
    return int(value)


def decode_access_token(
    token: str | None,
    verifier: TokenVerifier | None = None,
) -> AccessClaims:
    """Decode and verify an access token.

    Args:
        token: Raw header value.
        verifier: Verification policy; defaults to trusting the proxy.

    Returns:
        The decoded claims.

    Raises:
        InvalidAccessToken: If the token is missing, malformed, lacks a
            ``userId`` claim, or is rejected by the verifier.
    """
    if not token:
        raise InvalidAccessToken("Missing access token")

    segments = token.split(".")
    if len(segments) != 3:
        raise InvalidAccessToken("Access token must have three segments")

    payload = _decode_segment(segments[1])
    user_id = payload.get("userId")
    if isinstance(user_id, int) and not isinstance(user_id, bool):
        user_id = str(user_id)
    if not isinstance(user_id, str) or not user_id:
        raise InvalidAccessToken("Access token has no userId claim")

    claims = AccessClaims(
        user_id=user_id,
        issued_at=_optional_int(payload, "iat"),
        expires_at=_optional_int(payload, "exp"),
        payload=payload,
    )

    (verifier or TrustedProxyVerifier()).verify(token, claims)
    return claims


def verifier_for_secret(secret: str | None) -> TokenVerifier:
    """Return the verifier matching a configured token secret."""
    if secret:
        return HmacSha256Verifier(secret)
    return TrustedProxyVerifier()
