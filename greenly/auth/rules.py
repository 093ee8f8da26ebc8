"""
Rules - the small predicates the policy table is built from.

Each rule answers one question about a RouteContext and returns a
Decision. Rules are stateless and shared across requests.

Rules that need an identity are only ever called with `ctx.caller` set;
the evaluator checks that first via `needs_identity()`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from greenly.auth.context import Decision, RouteContext
from greenly.auth.relationships import RelationshipOracle
from greenly.core.models import UserRole
from greenly.core.utils import same_id


def _is_self(ctx: RouteContext, param: str = "user_id") -> bool:
    return ctx.caller is not None and same_id(ctx.param(param), ctx.caller.id)


def _is_admin(ctx: RouteContext) -> bool:
    return ctx.caller is not None and ctx.caller.is_administrator


# =============================================================================
# Base
# =============================================================================


class Rule(ABC):
    """A single authorization predicate."""

    def needs_identity(self, ctx: RouteContext) -> bool:
        """Does this rule need a resolved caller for this request?"""
        return True

    @abstractmethod
    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# =============================================================================
# Role / Ownership Rules
# =============================================================================


class AdministratorOnly(Rule):
    """Role-gated: allow iff the caller is an administrator."""

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if _is_admin(ctx):
            return Decision.allow("caller is administrator")
        return Decision.deny("administrator role required")


class SelfOrAdministrator(Rule):
    """Allow the owner named by `user_id`, or any administrator."""

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if _is_self(ctx):
            return Decision.allow("caller owns resource")
        if _is_admin(ctx):
            return Decision.allow("caller is administrator")
        return Decision.deny("caller is neither owner nor administrator")


class SelfOnly(Rule):
    """Only the owner. Administrators are not exempt."""

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if _is_self(ctx):
            return Decision.allow("caller owns resource")
        return Decision.deny("only the owner may do this")


class SelfWithRole(Rule):
    """Owner AND a specific role (cart and wishlist are consumer-only)."""

    def __init__(self, role: UserRole):
        self.role = role

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if not _is_self(ctx):
            return Decision.deny("caller does not own resource")
        if ctx.caller.role != self.role:
            return Decision.deny(f"requires {self.role.value} role")
        return Decision.allow(f"caller owns resource as {self.role.value}")

    def __repr__(self) -> str:
        return f"SelfWithRole({self.role.value})"


class OwnedAddressOrAdministrator(Rule):
    """
    Ownership-membership: the sub-entity must be in the caller's own
    collection and the owner must match. Administrators always pass.
    """

    def __init__(self, param: str = "address_id"):
        self.param = param

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if _is_admin(ctx):
            return Decision.allow("caller is administrator")
        if not _is_self(ctx):
            return Decision.deny("caller does not own resource")
        target = ctx.param(self.param)
        if any(same_id(address_id, target) for address_id in ctx.caller.address_ids):
            return Decision.allow("address belongs to caller")
        return Decision.deny("address does not belong to caller")


class Authenticated(Rule):
    """
    Any resolved caller.

    Used where the downstream query already limits results to what the
    caller may see (listing all orders).
    """

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        return Decision.allow("caller is authenticated")


# =============================================================================
# Relationship Rules
# =============================================================================


class RelatedToOrder(Rule):
    """Caller must be consumer, supplier or transporter of the order."""

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if await oracle.is_related_to_order(ctx.caller, ctx.param("order_id")):
            return Decision.allow("caller is related to order")
        return Decision.deny("caller is not related to order")


class RelatedToOrderItem(Rule):
    """
    Two-step check: order first, then the item inside it.

    The item lookup never runs unless the order check passed.
    """

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        order_id = ctx.param("order_id")
        if not await oracle.is_related_to_order(ctx.caller, order_id):
            return Decision.deny("caller is not related to order")
        if not await oracle.is_related_to_item(ctx.caller, order_id, ctx.param("item_id")):
            return Decision.deny("caller is not related to order item")
        return Decision.allow("caller is related to order item")


# =============================================================================
# Payload-dependent Rules
# =============================================================================


class PrivilegedSignup(Rule):
    """
    Creating an account.

    Ordinary self-registration is open to anyone, signed in or not.
    Creating an ADMINISTRATOR account needs an authenticated administrator,
    so only that branch asks for an identity.
    """

    field = "type"

    def _privileged(self, ctx: RouteContext) -> bool:
        value = ctx.request_body.get(self.field)
        # Repeated form fields arrive as a list; any administrator value counts
        if isinstance(value, (list, tuple)):
            return UserRole.ADMINISTRATOR.value in value
        return value == UserRole.ADMINISTRATOR.value

    def needs_identity(self, ctx: RouteContext) -> bool:
        return self._privileged(ctx)

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        if not self._privileged(ctx):
            return Decision.allow("unprivileged account creation")
        if _is_admin(ctx):
            return Decision.allow("administrator creating administrator")
        return Decision.deny("only administrators may create administrators")


class WhenBodyHas(Rule):
    """Pick a rule depending on whether the body carries a field."""

    def __init__(self, field: str, then: Rule, otherwise: Rule):
        self.field = field
        self.then = then
        self.otherwise = otherwise

    def _pick(self, ctx: RouteContext) -> Rule:
        return self.then if self.field in ctx.request_body else self.otherwise

    def needs_identity(self, ctx: RouteContext) -> bool:
        return self._pick(ctx).needs_identity(ctx)

    async def check(self, ctx: RouteContext, oracle: RelationshipOracle) -> Decision:
        return await self._pick(ctx).check(ctx, oracle)

    def __repr__(self) -> str:
        return f"WhenBodyHas({self.field!r}, {self.then!r}, {self.otherwise!r})"
