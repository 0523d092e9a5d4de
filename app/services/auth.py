"""
Identity provider access.

Verifies WorkOS access tokens against the WorkOS JWKS and resolves the
caller's profile (name, avatar) used to attribute reviews.
Reference: https://workos.com/docs/reference/authkit/session-tokens/access-token
"""
import asyncio
import logging
import time
from typing import Optional

import httpx
from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import (
    BadSignatureError,
    DecodeError,
    ExpiredTokenError,
    InvalidClaimError,
    JoseError,
)
from workos import WorkOSClient

from app.api.v1.schemas.auth import WorkOSUserResponse
from app.core.config import settings

logger = logging.getLogger(__name__)

JWKS_CACHE_TTL = 3600

# Checked in order; JoseError is the authlib base class
TOKEN_ERROR_MESSAGES = (
    (ExpiredTokenError, "Token has expired"),
    (BadSignatureError, "Invalid token signature"),
    (DecodeError, "Invalid token format"),
    (InvalidClaimError, "Invalid token claim"),
    (JoseError, "Invalid token"),
)


class AuthService:
    def __init__(self):
        self.workos_client = WorkOSClient(
            api_key=settings.WORKOS_API_KEY, client_id=settings.WORKOS_CLIENT_ID
        )
        self._jwks: Optional[dict] = None
        self._jwks_expires_at: float = 0.0

    async def _get_jwks(self) -> dict:
        """
        Fetch the WorkOS JWKS, reusing the cached copy for an hour.
        Reference: https://workos.com/docs/reference/authkit/session-tokens/jwks
        """
        now = time.time()
        if self._jwks and now < self._jwks_expires_at:
            return self._jwks

        jwks_url = await asyncio.to_thread(self.workos_client.user_management.get_jwks_url)
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(jwks_url)
            response.raise_for_status()

        self._jwks = response.json()
        self._jwks_expires_at = now + JWKS_CACHE_TTL
        logger.debug(f"Cached {len(self._jwks.get('keys', []))} WorkOS signing keys")
        return self._jwks

    async def _decode_claims(self, access_token: str) -> dict:
        key_set = JsonWebKey.import_key_set(await self._get_jwks())
        claims = jwt.decode(
            access_token,
            key_set,
            claims_options={"exp": {"essential": True}, "iat": {"essential": True}},
        )
        claims.validate()
        return claims

    async def verify_session(self, access_token: str) -> dict:
        """
        Verify a WorkOS access token and return the session it belongs to.

        Returns:
            Dict with user_id (sub), session_id (sid), exp and iat

        Raises:
            ValueError: If the token is malformed, expired or not signed by WorkOS
        """
        try:
            claims = await self._decode_claims(access_token)
        except JoseError as e:
            message = next(
                text for error_type, text in TOKEN_ERROR_MESSAGES if isinstance(e, error_type)
            )
            logger.warning(f"Rejected access token: {message} ({e})")
            raise ValueError(message) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Could not verify access token: {type(e).__name__}: {e}", exc_info=True)
            raise ValueError("Token verification failed") from e

        return {
            "user_id": claims.get("sub"),
            "session_id": claims.get("sid"),
            "exp": claims.get("exp"),
            "iat": claims.get("iat"),
        }

    async def get_user_profile(self, user_id: str) -> WorkOSUserResponse:
        """
        Fetch a user's profile from WorkOS.

        The WorkOS SDK is synchronous, so the call runs in a worker thread.
        """
        workos_user = await asyncio.to_thread(
            self.workos_client.user_management.get_user,
            user_id=user_id,
        )
        return WorkOSUserResponse.model_validate(workos_user)
