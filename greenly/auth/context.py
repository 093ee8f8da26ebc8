"""
Request context and decisions - the inputs and output of the evaluator.

Both are built fresh for every request and thrown away with the response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from greenly.auth.resources import ResourceKind
from greenly.core.models import Identity


class Outcome(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


@dataclass(frozen=True)
class Decision:
    """
    Result of a policy evaluation.
    
    `reason` is for logs only. `internal_error` marks a deny caused by a
    failing collaborator rather than by the rule itself.
    """
    
    outcome: Outcome
    reason: str
    internal_error: bool = False
    
    @property
    def allowed(self) -> bool:
        return self.outcome == Outcome.ALLOW
    
    @classmethod
    def allow(cls, reason: str) -> Decision:
        return cls(Outcome.ALLOW, reason)
    
    @classmethod
    def deny(cls, reason: str) -> Decision:
        return cls(Outcome.DENY, reason)
    
    @classmethod
    def error(cls, reason: str) -> Decision:
        return cls(Outcome.DENY, f"internal error: {reason}", internal_error=True)


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class RouteContext:
    """
    Everything a rule may look at.
    
    Usage:
        ctx = RouteContext.build("PUT", ResourceKind.SINGLE_USER, {"user_id": "5"}, body, identity)
        ctx.param("user_id")  # "5"
    """
    
    method: str
    resource_kind: ResourceKind
    route_params: Mapping[str, Any] = field(default_factory=dict)
    request_body: Mapping[str, Any] = field(default_factory=dict)
    caller: Identity | None = None
    
    @classmethod
    def build(
        cls,
        method: str,
        resource_kind: ResourceKind,
        route_params: Mapping[str, Any] | None = None,
        request_body: Mapping[str, Any] | None = None,
        caller: Identity | None = None,
    ) -> RouteContext:
        return cls(
            method=method.upper(),
            resource_kind=resource_kind,
            route_params=_freeze(route_params),
            request_body=_freeze(request_body),
            caller=caller,
        )
    
    @property
    def is_anonymous(self) -> bool:
        return self.caller is None
    
    def param(self, name: str) -> Any:
        return self.route_params.get(name)
    
    def with_caller(self, caller: Identity | None) -> RouteContext:
        return RouteContext(
            method=self.method,
            resource_kind=self.resource_kind,
            route_params=self.route_params,
            request_body=self.request_body,
            caller=caller,
        )
