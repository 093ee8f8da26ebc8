"""
Enforcement - turns a Decision into "carry on" or a rejection.

This is the clean interface for route authorization:

    @router.delete("/user/{user_id}/addresses/{address_id}")
    async def delete_address(user_id: int, address_id: int, auth: Authorization = Depends(authorize)):
        # auth.identity is the resolved caller if we get here
        ...

- `authorize` reads the matched route template, classifies it, resolves
  the caller only if the selected rule needs one, evaluates, enforces.
- Every deny is the same 403 with the same message, whichever rule failed.
- Missing or bad credentials on a rule that needs them is a 401.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Depends, FastAPI, Request
from fastapi.dependencies.models import Dependant
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.formparsers import MultiPartException

from greenly.auth.context import Decision, RouteContext
from greenly.auth.errors import AccessDenied, AuthError, CollaboratorError
from greenly.auth.identity import IdentityResolver, bearer_token, get_identity_resolver
from greenly.auth.policies import PolicyEvaluator
from greenly.auth.resources import ResourceKind
from greenly.core.models import Identity

logger = logging.getLogger(__name__)


BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True)
class Authorization:
    """What a handler gets back once access is allowed."""

    identity: Identity | None
    context: RouteContext
    decision: Decision


def enforce(decision: Decision, ctx: RouteContext) -> Authorization:
    """
    Pass an allow through with the caller attached, or raise AccessDenied.

    The decision reason goes to the log, never to the client.
    """
    caller = ctx.caller.id if ctx.caller else "anonymous"

    if decision.allowed:
        logger.debug(
            f"ALLOW {ctx.method} {ctx.resource_kind.value} for {caller}: {decision.reason}"
        )
        return Authorization(identity=ctx.caller, context=ctx, decision=decision)

    if decision.internal_error:
        logger.error(
            f"DENY {ctx.method} {ctx.resource_kind.value} for {caller}: {decision.reason}"
        )
    else:
        logger.info(
            f"DENY {ctx.method} {ctx.resource_kind.value} for {caller}: {decision.reason}"
        )
    raise AccessDenied(decision.reason)


# =============================================================================
# FastAPI Dependency
# =============================================================================


def get_policy_evaluator(request: Request) -> PolicyEvaluator:
    return request.app.state.policy_evaluator


def route_template(request: Request) -> str:
    """The template of the matched route, e.g. "/user/{user_id}"."""
    route = request.scope.get("route")
    if route is None:
        return request.url.path
    return route.path


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_form(request: Request) -> dict[str, Any]:
    form = await request.form()
    body: dict[str, Any] = {}
    for key in form.keys():
        values = [v for v in form.getlist(key) if isinstance(v, str)]
        if values:
            # Repeated fields stay lists so rules see every value
            body[key] = values[0] if len(values) == 1 else values
    return body


async def request_body(request: Request) -> dict[str, Any]:
    """
    The body as a mapping: a JSON object or form fields.

    A non-empty body that cannot be read is an AccessDenied; rules must
    never see an empty body in place of one they could not parse.
    """
    if request.method not in BODY_METHODS:
        return {}
    raw = await request.body()
    if not raw:
        return {}

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    try:
        if content_type in FORM_CONTENT_TYPES:
            return await _read_form(request)
        body = await request.json()
    except (ValueError, MultiPartException) as e:
        logger.info(f"Unreadable {content_type or 'untyped'} body on {request.method}: {e}")
        raise AccessDenied("unreadable request body") from e

    # Arrays and scalars carry no fields for a rule to branch on
    return body if isinstance(body, dict) else {}


async def authorize(
    request: Request,
    token: str | None = Depends(bearer_token),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
) -> Authorization:
    ctx = RouteContext.build(
        method=request.method,
        resource_kind=evaluator.classify(route_template(request)),
        route_params=request.path_params,
        request_body=await request_body(request),
    )

    if evaluator.needs_identity(ctx):
        ctx = ctx.with_caller(await resolver.require(token))

    decision = await evaluator.evaluate_context(ctx)
    return enforce(decision, ctx)


# =============================================================================
# Error Handlers
# =============================================================================


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, CollaboratorError):
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def install_error_handlers(app: FastAPI) -> None:
    """Render every AuthError as {"message": ...} with its status code."""
    app.add_exception_handler(AuthError, _auth_error_handler)


# =============================================================================
# Route Coverage
# =============================================================================


def _depends_on(dependant: Dependant, call: Callable) -> bool:
    return any(
        sub.call is call or _depends_on(sub, call)
        for sub in dependant.dependencies
    )


def unclassified_routes(app: FastAPI, evaluator: PolicyEvaluator | None = None) -> list[str]:
    """
    Routes guarded by `authorize` that the route table does not know.

    Such routes deny everything; an empty list is the healthy state.
    """
    evaluator = evaluator or app.state.policy_evaluator
    missing = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        if not _depends_on(route.dependant, authorize):
            continue
        if evaluator.classify(route.path) == ResourceKind.UNCLASSIFIED:
            missing.append(route.path)
    return missing
