"""
Identity resolution - bearer token in, Identity snapshot out.

The token only proves which user id the caller claims. Role and
addresses come from the identity store on every request.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from greenly.auth.errors import CollaboratorError, Unauthenticated
from greenly.auth.jwt import TokenError, decode_token
from greenly.core.models import Identity, UserRecord
from greenly.storage.base import IdentityStore

logger = logging.getLogger(__name__)


# Optional JWT bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)


class IdentityResolver:
    """
    Resolves bearer tokens against the identity store.
    
    Usage:
        resolver = IdentityResolver(store)
        identity = await resolver.require(token)  # raises Unauthenticated
    """
    
    def __init__(self, store: IdentityStore):
        self.store = store
    
    async def get_user_record(
        self,
        user_id: int,
        include_credentials: bool = False,
    ) -> UserRecord | None:
        try:
            return await self.store.get_user_record(user_id, include_credentials)
        except Exception as e:
            raise CollaboratorError(f"identity lookup failed for user {user_id}: {e}") from e
    
    async def resolve_identity_from_token(self, token: str | None) -> Identity | None:
        """
        Identity for a bearer token, or None if there is no usable one.
        
        Raises CollaboratorError if the store itself fails.
        """
        if not token:
            return None
        
        try:
            payload = decode_token(token, expected_type="access")
        except TokenError as e:
            logger.info(f"Rejected bearer token: {e}")
            return None
        
        try:
            user_id = int(payload.sub)
        except ValueError:
            logger.info(f"Rejected bearer token with non-numeric subject {payload.sub!r}")
            return None
        
        record = await self.get_user_record(user_id)
        if record is None:
            logger.info(f"Bearer token names unknown user {user_id}")
            return None
        
        return Identity.from_record(record)
    
    async def require(self, token: str | None) -> Identity:
        """Like resolve_identity_from_token, but absence is a 401."""
        identity = await self.resolve_identity_from_token(token)
        if identity is None:
            raise Unauthenticated("missing or invalid bearer token")
        return identity


# =============================================================================
# FastAPI Dependencies
# =============================================================================


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


def bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> str | None:
    return credentials.credentials if credentials else None


async def get_current_identity(
    token: str | None = Depends(bearer_token),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity:
    """Authentication only: any valid bearer, no policy check."""
    return await resolver.require(token)
