"""
Auth error types.

Rejections carry a fixed, generic message so callers never learn which
rule failed or whether the resource exists.
"""

from __future__ import annotations


UNAUTHORIZED_MESSAGE = "Invalid token. Unauthorized access."
FORBIDDEN_MESSAGE = "Insufficient permissions for specified resource."
INTERNAL_ERROR_MESSAGE = "Internal server error."


class AuthError(Exception):
    """Base for errors rendered as {"message": ...} responses."""
    
    status_code: int = 500
    message: str = INTERNAL_ERROR_MESSAGE
    
    def __init__(self, detail: str | None = None):
        # detail is for logs only, never sent to the client
        super().__init__(detail or self.message)
        self.detail = detail


class Unauthenticated(AuthError):
    """No resolvable identity where one is required."""
    
    status_code = 401
    message = UNAUTHORIZED_MESSAGE


class AccessDenied(AuthError):
    """Identity resolved (or not needed) but the policy said no."""
    
    status_code = 403
    message = FORBIDDEN_MESSAGE


class CollaboratorError(AuthError):
    """The identity store or relationship oracle failed."""
    
    status_code = 500
    message = INTERNAL_ERROR_MESSAGE


class RouteTableError(Exception):
    """The static route table is malformed. Fatal at startup."""
    pass
