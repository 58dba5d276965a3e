"""
JWT verification for bearer authentication.

Tokens are issued by the auth service; this side only checks them.
"""

from typing import Dict, Any
from jose import JWTError, jwt
from journal.config import settings


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT token

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise JWTError(f"Invalid token: {str(e)}")


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify an access token

    Args:
        token: Access token to verify

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid, expired, or not an access token
    """
    payload = decode_token(token)

    if payload.get("type") != "access":
        raise JWTError("Invalid token type")

    return payload
