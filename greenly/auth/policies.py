"""
Policies - the table that says who may do what to which resource.

Design:
- One rule per (ResourceKind, method). No entry means DENY.
- UNCLASSIFIED routes never reach a rule.
- Rules that need a caller are denied outright when there is none.
- Any collaborator failure inside a rule becomes a DENY flagged as an
  internal error. ALLOW/DENY are return values, never exceptions.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping

from greenly.auth.context import Decision, RouteContext
from greenly.auth.errors import RouteTableError
from greenly.auth.relationships import RelationshipOracle
from greenly.auth.resources import ROUTE_TABLE, ResourceKind, classify
from greenly.auth.rules import (
    AdministratorOnly,
    Authenticated,
    OwnedAddressOrAdministrator,
    PrivilegedSignup,
    RelatedToOrder,
    RelatedToOrderItem,
    Rule,
    SelfOnly,
    SelfOrAdministrator,
    SelfWithRole,
    WhenBodyHas,
)
from greenly.core.models import Identity, UserRole

logger = logging.getLogger(__name__)


HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})


# =============================================================================
# Rule Table
# =============================================================================


_admin = AdministratorOnly()
_self_or_admin = SelfOrAdministrator()
_self = SelfOnly()
_consumer = SelfWithRole(UserRole.CONSUMER)

RuleKey = tuple[ResourceKind, str]

RULES: Mapping[RuleKey, Rule] = MappingProxyType({
    # Users
    (ResourceKind.ALL_USERS, "GET"): _admin,
    (ResourceKind.ALL_USERS, "POST"): PrivilegedSignup(),
    (ResourceKind.SINGLE_USER, "GET"): _self_or_admin,
    # Account type changes are for administrators only
    (ResourceKind.SINGLE_USER, "PUT"): WhenBodyHas("type", then=_admin, otherwise=_self_or_admin),
    (ResourceKind.SINGLE_USER, "DELETE"): _self_or_admin,

    # Addresses
    (ResourceKind.ALL_ADDRESSES, "POST"): _self_or_admin,
    (ResourceKind.SINGLE_ADDRESS, "PUT"): OwnedAddressOrAdministrator(),
    (ResourceKind.SINGLE_ADDRESS, "DELETE"): OwnedAddressOrAdministrator(),

    # Notifications (dismissal is the owner's alone)
    (ResourceKind.ALL_NOTIFICATIONS, "GET"): _self_or_admin,
    (ResourceKind.ALL_NOTIFICATIONS, "PUT"): _self,
    (ResourceKind.SINGLE_NOTIFICATION, "PUT"): _self,

    # Orders
    (ResourceKind.ALL_USER_ORDERS, "GET"): _self_or_admin,
    (ResourceKind.ALL_USER_ORDERS, "POST"): _consumer,
    (ResourceKind.ALL_ORDERS, "GET"): Authenticated(),
    (ResourceKind.SINGLE_ORDER, "GET"): RelatedToOrder(),
    (ResourceKind.SINGLE_ORDER_ITEM, "PUT"): RelatedToOrderItem(),

    # Categories
    (ResourceKind.ALL_CATEGORIES, "POST"): _admin,
    (ResourceKind.SINGLE_CATEGORY, "PUT"): _admin,
    (ResourceKind.SINGLE_CATEGORY, "DELETE"): _admin,

    # Cart / wishlist
    (ResourceKind.ALL_CART_ITEMS, "GET"): _consumer,
    (ResourceKind.ALL_CART_ITEMS, "POST"): _consumer,
    (ResourceKind.ALL_CART_ITEMS, "DELETE"): _consumer,
    (ResourceKind.SINGLE_CART_ITEM, "PUT"): _consumer,
    (ResourceKind.SINGLE_CART_ITEM, "DELETE"): _consumer,
    (ResourceKind.ALL_WISHLIST_ITEMS, "GET"): _consumer,
    (ResourceKind.ALL_WISHLIST_ITEMS, "POST"): _consumer,
    (ResourceKind.ALL_WISHLIST_ITEMS, "DELETE"): _consumer,
    (ResourceKind.SINGLE_WISHLIST_ITEM, "DELETE"): _consumer,
})


def validate_route_table(
    table: Mapping[str, Any] = ROUTE_TABLE,
    rules: Mapping[RuleKey, Rule] = RULES,
) -> None:
    """
    Sanity-check the static tables.

    Raises RouteTableError; a bad table must stop the service from
    starting rather than deny (or allow) at request time.
    """
    kinds = set()
    for template, kind in table.items():
        if not isinstance(kind, ResourceKind):
            raise RouteTableError(f"Route {template!r} maps to non-kind {kind!r}")
        if kind == ResourceKind.UNCLASSIFIED:
            raise RouteTableError(f"Route {template!r} explicitly maps to UNCLASSIFIED")
        kinds.add(kind)

    for (kind, method), rule in rules.items():
        if kind not in kinds:
            raise RouteTableError(f"Rule for {kind} has no route in the table")
        if method not in HTTP_METHODS:
            raise RouteTableError(f"Rule for {kind} uses unknown method {method!r}")
        if not isinstance(rule, Rule):
            raise RouteTableError(f"Rule for ({kind}, {method}) is not a Rule: {rule!r}")


validate_route_table()


# =============================================================================
# Evaluator
# =============================================================================


class PolicyEvaluator:
    """
    Maps a RouteContext to a Decision.

    Usage:
        evaluator = PolicyEvaluator(RelationshipOracle(store))
        decision = await evaluator.evaluate_context(ctx)
        if decision.allowed:
            ...
    """

    def __init__(
        self,
        oracle: RelationshipOracle,
        rules: Mapping[RuleKey, Rule] = RULES,
        table: Mapping[str, ResourceKind] = ROUTE_TABLE,
    ):
        self.oracle = oracle
        self.rules = rules
        self.table = table

    def classify(self, route_template: str) -> ResourceKind:
        return classify(route_template, self.table)

    def rule_for(self, kind: ResourceKind, method: str) -> Rule | None:
        """The rule for this kind and method, or None (fail closed)."""
        if kind == ResourceKind.UNCLASSIFIED:
            return None
        return self.rules.get((kind, method.upper()))

    def needs_identity(self, ctx: RouteContext) -> bool:
        """
        Should the caller be resolved before evaluating?

        False when no rule applies; such requests are denied without
        ever looking at credentials.
        """
        rule = self.rule_for(ctx.resource_kind, ctx.method)
        return rule is not None and rule.needs_identity(ctx)

    async def evaluate(
        self,
        route_template: str,
        method: str,
        route_params: Mapping[str, Any] | None = None,
        request_body: Mapping[str, Any] | None = None,
        caller: Identity | None = None,
    ) -> Decision:
        """Classify the route, then evaluate."""
        ctx = RouteContext.build(
            method=method,
            resource_kind=self.classify(route_template),
            route_params=route_params,
            request_body=request_body,
            caller=caller,
        )
        return await self.evaluate_context(ctx)

    async def evaluate_context(self, ctx: RouteContext) -> Decision:
        if ctx.resource_kind == ResourceKind.UNCLASSIFIED:
            return Decision.deny("route is not classified")

        rule = self.rule_for(ctx.resource_kind, ctx.method)
        if rule is None:
            return Decision.deny(f"no rule for {ctx.method} on {ctx.resource_kind.value}")

        if rule.needs_identity(ctx) and ctx.is_anonymous:
            return Decision.deny("authentication required")

        try:
            return await rule.check(ctx, self.oracle)
        except Exception as e:
            logger.exception(
                f"Rule {rule!r} failed for {ctx.method} {ctx.resource_kind.value}"
            )
            return Decision.error(str(e))
