"""
Authorization system - one table, fail closed.

Flow per request:
1. Classify the route template into a ResourceKind
2. Resolve the caller from the bearer token (only if the rule needs one)
3. Evaluate the (kind, method) rule, consulting the relationship oracle
4. Enforce: pass the identity on, or reject with a uniform 401/403
"""

from greenly.auth.context import Decision, Outcome, RouteContext
from greenly.auth.credentials import (
    authenticate_federated,
    authenticate_user,
    find_or_create_federated_user,
    hash_password,
    make_credentials,
    verify_password,
)
from greenly.auth.enforcement import (
    Authorization,
    authorize,
    enforce,
    install_error_handlers,
    unclassified_routes,
)
from greenly.auth.errors import (
    AccessDenied,
    AuthError,
    CollaboratorError,
    RouteTableError,
    Unauthenticated,
)
from greenly.auth.identity import IdentityResolver, get_current_identity
from greenly.auth.jwt import TokenPair, create_token_pair, decode_token
from greenly.auth.policies import RULES, PolicyEvaluator, validate_route_table
from greenly.auth.relationships import RelationshipOracle
from greenly.auth.resources import ROUTE_TABLE, ResourceKind, classify
from greenly.auth.routes import router as auth_router

__all__ = [
    # Main interface
    "authorize",
    "Authorization",
    "enforce",
    "install_error_handlers",
    "unclassified_routes",
    # Evaluation
    "PolicyEvaluator",
    "RULES",
    "validate_route_table",
    "RelationshipOracle",
    "IdentityResolver",
    "get_current_identity",
    # Types
    "Decision",
    "Outcome",
    "RouteContext",
    "ResourceKind",
    "ROUTE_TABLE",
    "classify",
    # Errors
    "AuthError",
    "AccessDenied",
    "Unauthenticated",
    "CollaboratorError",
    "RouteTableError",
    # Credentials / tokens
    "authenticate_user",
    "authenticate_federated",
    "find_or_create_federated_user",
    "hash_password",
    "make_credentials",
    "verify_password",
    "TokenPair",
    "create_token_pair",
    "decode_token",
    # Router
    "auth_router",
]
