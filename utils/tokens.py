"""
Token issuer: signed, time-bound access and refresh tokens (PyJWT, HS256 by default).

Access and refresh tokens are signed with different secrets, so a refresh token
can never pass as an access token even if its "type" claim were forged.
"""
from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable, Dict

import jwt

from utils.security import generate_jti

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class InvalidSignature(TokenError):
    """Malformed token, bad signature, wrong issuer or wrong token type."""


class TokenExpired(TokenError):
    """Signature is fine but exp is in the past."""


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str | None = None,
        algorithm: str = "HS256",
        issuer: str = "auth-api",
        clock: Callable[[], float] = time.time,
    ):
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret or access_secret}
        self._algorithm = algorithm
        self._issuer = issuer
        self._clock = clock

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> "TokenIssuer":
        return cls(
            access_secret=config["JWT_ACCESS_SECRET"],
            refresh_secret=config.get("JWT_REFRESH_SECRET"),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "auth-api"),
            clock=clock,
        )

    def issue_access_token(self, claims: Dict[str, Any], ttl: timedelta) -> str:
        return self._issue(claims, ttl, ACCESS)

    def issue_refresh_token(self, claims: Dict[str, Any], ttl: timedelta) -> str:
        return self._issue(claims, ttl, REFRESH)

    def _issue(self, claims: Dict[str, Any], ttl: timedelta, token_type: str) -> str:
        if "sub" not in claims:
            raise ValueError("claims must carry a 'sub' (user id)")
        now = int(self._clock())
        payload = dict(claims)
        payload.update(
            {
                "sub": str(claims["sub"]),
                "iss": self._issuer,
                "iat": now,
                "exp": now + int(ttl.total_seconds()),
                "jti": generate_jti(),
                "type": token_type,
            }
        )
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    def verify(self, token: str, expected_type: str = ACCESS) -> Dict[str, Any]:
        """
        Decode and validate a token. Raises TokenExpired or InvalidSignature.
        expected_type must be "access" or "refresh".
        """
        if expected_type not in self._secrets:
            raise ValueError(f"unknown token type: {expected_type}")
        try:
            decoded = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self._algorithm],
                issuer=self._issuer,
                # exp is checked below against the issuer's own clock
                options={"require": ["exp", "iat", "sub", "jti"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature(f"Invalid token: {exc}") from exc

        if int(decoded["exp"]) <= int(self._clock()):
            raise TokenExpired("Token expired")
        if decoded.get("type") != expected_type:
            raise InvalidSignature("Wrong token type")
        return decoded
