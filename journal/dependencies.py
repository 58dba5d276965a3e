"""
FastAPI dependency injection for authentication and services
"""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from typing import Optional

from journal.utils.security import verify_access_token
from journal.models.user import EDITORIAL_ROLES, User, UserRole
from journal.services.article_repository import article_repository
from journal.services.article_service import ArticleService, build_article_service
from journal.services.email_service import EmailClient
from journal.services.firebase_service import firebase_service
from journal.services.search_service import SearchEngine

logger = logging.getLogger(__name__)

# Security scheme for JWT Bearer tokens
security = HTTPBearer()
# optional bearer that doesn't raise when missing
security_optional = HTTPBearer(auto_error=False)


async def _user_from_token(token: str) -> Optional[User]:
    """Resolve a bearer token to its stored user, or None."""
    try:
        payload = verify_access_token(token)
    except JWTError as e:
        logger.debug("Token verification failed: %s", e)
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return await firebase_service.get_user_by_uid(user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token

    Args:
        credentials: HTTP Authorization credentials

    Returns:
        Current user as a User Pydantic model

    Raises:
        HTTPException: If token is invalid or user not found
    """
    user = await _user_from_token(credentials.credentials) if credentials.credentials else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        security_optional),
) -> Optional[User]:
    """
    Dependency to optionally get current user (doesn't raise error if not authenticated)

    Returns:
        User object if authenticated, None otherwise
    """
    if not credentials:
        return None
    return await _user_from_token(credentials.credentials)


def require_roles(*roles: UserRole):
    """
    Dependency factory to require one of multiple roles

    Args:
        roles: Tuple of acceptable roles

    Returns:
        Dependency function
    """

    async def roles_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            roles_str = ", ".join([role.value for role in roles])
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {roles_str}",
            )
        return current_user

    return roles_checker


# Writers and admins
require_editor = require_roles(*EDITORIAL_ROLES)


@lru_cache
def get_email_client() -> EmailClient:
    return EmailClient.from_settings()


def get_article_service(
    email_client: EmailClient = Depends(get_email_client),
) -> ArticleService:
    return build_article_service(email_client)


def get_search_engine() -> SearchEngine:
    return SearchEngine(article_repository)
