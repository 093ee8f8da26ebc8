# =============================================================================
# JWT Token Issuance and Validation
# =============================================================================
#
# Tokens only carry the claimed user id (`sub`). Role and addresses are
# always re-read from the identity store, so a token never outlives a
# role change.
#
# =============================================================================

from datetime import datetime, timedelta, timezone
import logging

from pydantic import BaseModel
import jwt

from greenly.config import get_settings
from greenly.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # user_id
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    jti: str  # unique token ID (for revocation)


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


# =============================================================================
# Token Creation
# =============================================================================

def _encode(user_id: int | str, token_type: str, lifetime: timedelta, prefix: str) -> str:
    settings = get_settings()
    now = utc_now()
    
    payload = {
        "sub": str(user_id),
        "exp": now + lifetime,
        "iat": now,
        "type": token_type,
        "jti": generate_id(prefix),
    }
    
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int | str) -> str:
    """Create a JWT access token."""
    minutes = get_settings().jwt_access_token_expire_minutes
    return _encode(user_id, "access", timedelta(minutes=minutes), "tok")


def create_refresh_token(user_id: int | str) -> str:
    """Create a JWT refresh token (longer-lived)."""
    days = get_settings().jwt_refresh_token_expire_days
    return _encode(user_id, "refresh", timedelta(days=days), "rtok")


def create_token_pair(user_id: int | str) -> TokenPair:
    """Create both access and refresh tokens."""
    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
        expires_in=get_settings().jwt_access_token_expire_minutes * 60,
    )


# =============================================================================
# Token Validation
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


def decode_token(token: str, expected_type: str = "access") -> TokenPayload:
    """
    Decode and validate a JWT token.
    
    Args:
        token: The JWT string
        expected_type: "access" or "refresh"
    
    Returns:
        TokenPayload with validated claims
    
    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")
    
    # Validate token type
    if payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")
    
    return TokenPayload(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        type=payload["type"],
        jti=payload.get("jti", ""),
    )


def refresh_tokens(refresh_token: str) -> TokenPair:
    """Use a refresh token to get new access and refresh tokens."""
    payload = decode_token(refresh_token, expected_type="refresh")
    return create_token_pair(payload.sub)
