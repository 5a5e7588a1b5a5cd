"""
Access-token verification.

Tokens are minted by the external identity provider with the shared
``secret_key``; this service only checks signature, expiry and token type
and hands the caller's user id to the request dependencies.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from collabhub.config import get_settings


class AccessTokenPayload(BaseModel):
    """Verified claims of an access token."""

    sub: str  # User ID
    exp: datetime
    email: Optional[str] = None

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.sub)


class TokenVerifier:
    """Decode and validate bearer tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """
        Verify and decode an access token.

        Returns:
            AccessTokenPayload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except JWTError:
            return None

        if payload.get("type") != "access" or "sub" not in payload:
            return None

        try:
            uuid.UUID(str(payload["sub"]))
        except ValueError:
            return None

        return AccessTokenPayload(
            sub=str(payload["sub"]),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            email=payload.get("email"),
        )


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    """Verify an access token with the configured secret."""
    return TokenVerifier().verify_access_token(token)
