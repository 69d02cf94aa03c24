import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Callable

from resume_service.errors import AuthenticationError, ValidationError

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class TokenService:
    """Issues and validates HS256 JSON Web Tokens carrying a username.

    Tokens are stateless: nothing is recorded server-side, so a token stays
    valid until ``exp`` regardless of what happens after issuance.
    """

    def __init__(self, secret_key: str, *, ttl_seconds: int = 3600, clock: Callable[[], float] = time.time):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key.encode("utf-8")
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def _sign(self, signing_input: bytes) -> str:
        return _b64url_encode(hmac.new(self.secret_key, signing_input, hashlib.sha256).digest())

    def issue(self, username: str) -> str:
        if not isinstance(username, str) or not username:
            raise ValidationError("username required in JSON body")

        issued_at = int(self.clock())
        claims = {"username": username, "iat": issued_at, "exp": issued_at + self.ttl_seconds}
        header = _b64url_encode(json.dumps(_HEADER, separators=(",", ":")).encode("utf-8"))
        payload = _b64url_encode(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header}.{payload}".encode("ascii")
        return f"{header}.{payload}.{self._sign(signing_input)}"

    def validate(self, token: str) -> dict:
        parts = token.split(".") if token else []
        if len(parts) != 3:
            raise AuthenticationError("Invalid token", details="malformed token")
        header_segment, payload_segment, signature = parts

        try:
            signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
            provided = signature.encode("ascii")
        except UnicodeError as exc:
            raise AuthenticationError("Invalid token", details="malformed token") from exc

        # Nothing attacker-controlled is parsed until the signature checks out.
        if not hmac.compare_digest(self._sign(signing_input).encode("ascii"), provided):
            raise AuthenticationError("Invalid token", details="invalid signature")

        try:
            header = json.loads(_b64url_decode(header_segment))
            claims = json.loads(_b64url_decode(payload_segment))
        except (binascii.Error, UnicodeError, ValueError, RecursionError) as exc:
            raise AuthenticationError("Invalid token", details="malformed token") from exc
        if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
            raise AuthenticationError("Invalid token", details="unsupported algorithm")
        if not isinstance(claims, dict):
            raise AuthenticationError("Invalid token", details="malformed payload")

        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            raise AuthenticationError("Invalid token", details="missing expiry")
        if self.clock() >= expires_at:
            raise AuthenticationError("Invalid token", details="jwt expired")

        username = claims.get("username")
        if not isinstance(username, str) or not username:
            raise AuthenticationError("Invalid token", details="missing username")
        return claims
