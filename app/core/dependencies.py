"""
Identity dependencies for protecting endpoints
Reference: https://fastapi.tiangolo.com/tutorial/dependencies/
"""
import logging
import time
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from workos.exceptions import NotFoundException

from app.api.v1.schemas.auth import WorkOSUserResponse
from app.core.config import settings
from app.core.exceptions import AuthenticationRequired
from app.services.auth import AuthService

logger = logging.getLogger(__name__)

# User cache to reduce WorkOS API calls
# Cache structure: {user_id: (user_data, expiry_timestamp)}
_user_cache: dict[str, tuple[WorkOSUserResponse, float]] = {}

# auto_error=False: a missing header must yield 401 (or anonymous), not 403
# Reference: https://fastapi.tiangolo.com/reference/security/#fastapi.security.HTTPBearer
security = HTTPBearer(auto_error=False)


@lru_cache()
def get_auth_service() -> AuthService:
    """
    Get a singleton AuthService instance.

    Reusing one instance keeps the JWKS cache at the application level
    rather than the request level.
    """
    return AuthService()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def resolve_user(access_token: str) -> WorkOSUserResponse:
    """
    Verify an access token and return the caller's profile.

    Profiles are cached per user for USER_CACHE_TTL seconds.

    Raises:
        AuthenticationRequired: If the token is invalid or the user is unknown
    """
    auth_service = get_auth_service()

    try:
        session_data = await auth_service.verify_session(access_token)
    except ValueError as e:
        raise AuthenticationRequired(str(e) or "The access token is invalid") from e

    user_id = session_data.get("user_id")
    if not user_id:
        logger.error("Token missing user_id (sub claim)")
        raise AuthenticationRequired("Invalid token: missing user information")

    current_time = time.time()
    cached = _user_cache.get(user_id)
    if cached:
        cached_user, expiry = cached
        if current_time < expiry:
            logger.debug(f"User {user_id} found in cache (expires in {expiry - current_time:.1f}s)")
            return cached_user
        del _user_cache[user_id]

    try:
        user = await auth_service.get_user_profile(user_id)
    except NotFoundException as e:
        logger.error(f"User {user_id} not found in WorkOS after token verification")
        raise AuthenticationRequired("User not found") from e

    _user_cache[user_id] = (user, current_time + settings.USER_CACHE_TTL)
    logger.debug(f"User {user_id} cached (expires in {settings.USER_CACHE_TTL}s)")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> WorkOSUserResponse:
    """
    Dependency to get the current authenticated user.

    Usage:
        @router.post("/protected")
        async def protected_route(current_user = Depends(get_current_user)):
            return {"user_id": current_user.id}

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials:
        raise _unauthorized("Authentication required")

    try:
        return await resolve_user(credentials.credentials)
    except AuthenticationRequired as e:
        raise _unauthorized(e.message) from e
    except Exception as e:
        logger.error(f"Unexpected authentication error: {type(e).__name__}: {e}", exc_info=True)
        raise _unauthorized("Authentication failed") from e


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[WorkOSUserResponse]:
    """
    Dependency for endpoints that also serve anonymous callers.

    Returns None instead of failing when the token is missing or invalid.
    """
    if not credentials:
        return None

    try:
        return await resolve_user(credentials.credentials)
    except AuthenticationRequired as e:
        logger.debug(f"Ignoring invalid credentials on optional-auth endpoint: {e.message}")
        return None
    except Exception as e:
        logger.warning(f"Identity lookup failed, treating caller as anonymous: {type(e).__name__}: {e}")
        return None
