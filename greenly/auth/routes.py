# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/login     - Get tokens (email + password)
#   POST /auth/federated - Get tokens (verified external identity)
#   POST /auth/refresh   - Refresh tokens
#   GET  /auth/me        - Get current user
#
# =============================================================================

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr

from greenly.auth.credentials import authenticate_user, find_or_create_federated_user
from greenly.auth.identity import IdentityResolver, get_current_identity, get_identity_resolver
from greenly.auth.jwt import (
    TokenExpiredError,
    TokenInvalidError,
    TokenPair,
    create_token_pair,
    refresh_tokens,
)
from greenly.core.models import Identity, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request/Response Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class FederatedLoginRequest(BaseModel):
    provider: str
    subject: str
    email: EmailStr
    first_name: str = ""
    last_name: str = ""


class RefreshRequest(BaseModel):
    refresh_token: str


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/login", response_model=TokenPair)
async def login(data: LoginRequest, request: Request):
    """
    Authenticate and get tokens.
    """
    store = request.app.state.identity_store
    user = await authenticate_user(store, data.email, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Wrong credentials.")
    
    return create_token_pair(user.id)


@router.post("/federated", response_model=TokenPair)
async def federated_login(data: FederatedLoginRequest, request: Request):
    """
    Get tokens for an identity an external provider has already verified.
    
    The provider code exchange happens before this call. An unknown e-mail
    gets a new CONSUMER account; a known one must match its provider and
    subject.
    """
    store = request.app.state.identity_store
    user = await find_or_create_federated_user(
        store,
        provider=data.provider,
        subject=data.subject,
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    if not user:
        raise HTTPException(status_code=401, detail="Wrong credentials.")
    
    return create_token_pair(user.id)


@router.post("/refresh", response_model=TokenPair)
async def refresh(data: RefreshRequest):
    """
    Use refresh token to get new access token.
    """
    try:
        return refresh_tokens(data.refresh_token)
    except TokenExpiredError:
        raise HTTPException(status_code=401, detail="Refresh token expired, please login again")
    except TokenInvalidError as e:
        raise HTTPException(status_code=401, detail=str(e))


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.get("/me", response_model=UserResponse)
async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """
    Get the current authenticated user.
    """
    user = await resolver.get_user_record(identity.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        type=user.type,
    )
