"""
Identity - token verification and user lookups.
"""

from collabhub.kernel.identity.tokens import (
    AccessTokenPayload,
    TokenVerifier,
    verify_access_token,
)
from collabhub.kernel.identity.directory import UserDirectory

__all__ = [
    "AccessTokenPayload",
    "TokenVerifier",
    "verify_access_token",
    "UserDirectory",
]
