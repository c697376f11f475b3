"""HS256 bearer tokens signed with the shared ``JWT_SECRET_KEY``.

Users log in through the external identity provider, which mints these
tokens; artigov only verifies them. ``create_token`` is here for ops
scripts and tests.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

TOKEN_ISSUER = "artigov"
CLOCK_SKEW_SECONDS = 30

_HEADER = {"alg": "HS256", "typ": "JWT"}


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    exp: datetime
    email: Optional[str] = None


def _encode_segment(obj) -> bytes:
    raw = obj if isinstance(obj, bytes) else json.dumps(obj, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=")


def _decode_segment(segment: bytes) -> bytes:
    return base64.urlsafe_b64decode(segment + b"=" * (-len(segment) % 4))


def _sign(secret: str, header_b64: bytes, payload_b64: bytes) -> bytes:
    return hmac.new(secret.encode(), header_b64 + b"." + payload_b64, hashlib.sha256).digest()


def create_token(
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 8,
    email: Optional[str] = None,
) -> str:
    """Mint a token whose ``sub`` is the user id.

    Raises:
        ValueError: *algorithm* is not HS256.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    issued = int(time.time())
    claims = {"iss": TOKEN_ISSUER, "sub": subject, "iat": issued, "exp": issued + expires_hours * 3600}
    if email:
        claims["email"] = email

    header_b64, payload_b64 = _encode_segment(_HEADER), _encode_segment(claims)
    signature_b64 = _encode_segment(_sign(secret, header_b64, payload_b64))
    return b".".join((header_b64, payload_b64, signature_b64)).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Verify *token* and return its payload, or ``None`` if it is unusable.

    Unusable means malformed, badly signed, issued by someone else, without
    a subject, expired, or issued in the future beyond the allowed skew.
    """
    if algorithm != "HS256" or token.count(".") != 2:
        return None
    header_b64, payload_b64, signature_b64 = token.encode().split(b".")
    try:
        if not hmac.compare_digest(_sign(secret, header_b64, payload_b64), _decode_segment(signature_b64)):
            return None
        header = json.loads(_decode_segment(header_b64))
        claims = json.loads(_decode_segment(payload_b64))
    except (ValueError, TypeError):
        return None

    if not isinstance(header, dict) or header.get("alg") != "HS256" or not isinstance(claims, dict):
        return None
    if claims.get("iss") != TOKEN_ISSUER or not claims.get("sub"):
        return None

    now = time.time()
    try:
        expires = float(claims["exp"])
        issued = float(claims.get("iat", now))
    except (KeyError, TypeError, ValueError):
        return None
    if now > expires or issued > now + CLOCK_SKEW_SECONDS:
        return None

    return TokenPayload(
        sub=str(claims["sub"]),
        exp=datetime.fromtimestamp(expires, tz=timezone.utc),
        email=claims.get("email"),
    )
