"""
In-memory storage implementations for development and tests.

These work without any external services.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from greenly.core.models import Credentials, Identity, UserRecord, UserRole
from greenly.core.utils import same_id
from greenly.storage.base import IdentityStore, RelationshipStore


# =============================================================================
# In-Memory Identity Store
# =============================================================================


class InMemoryIdentityStore(IdentityStore):
    """Dict-backed user records."""
    
    def __init__(self, users: list[UserRecord] | None = None):
        self._users: dict[int, UserRecord] = {}
        self._by_email: dict[str, int] = {}
        for user in users or []:
            self.add(user)
    
    def add(self, user: UserRecord) -> UserRecord:
        self._users[user.id] = user
        self._by_email[user.email.lower()] = user.id
        return user
    
    def _project(self, user: UserRecord | None, include_credentials: bool) -> UserRecord | None:
        if user is None:
            return None
        if include_credentials:
            return user.model_copy(deep=True)
        return user.model_copy(update={"credentials": None}, deep=True)
    
    async def get_user_record(
        self,
        user_id: int,
        include_credentials: bool = False,
    ) -> UserRecord | None:
        return self._project(self._users.get(user_id), include_credentials)
    
    async def get_user_by_email(
        self,
        email: str,
        include_credentials: bool = False,
    ) -> UserRecord | None:
        user_id = self._by_email.get(email.lower())
        if user_id is None:
            return None
        return self._project(self._users.get(user_id), include_credentials)
    
    async def create_user(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
        role: UserRole = UserRole.CONSUMER,
        credentials: Credentials | None = None,
    ) -> UserRecord:
        if email.lower() in self._by_email:
            raise ValueError(f"E-mail already registered: {email}")
        user = self.add(UserRecord(
            id=max(self._users, default=0) + 1,
            email=email,
            first_name=first_name,
            last_name=last_name,
            type=role,
            credentials=credentials,
        ))
        return self._project(user, include_credentials=False)


# =============================================================================
# In-Memory Relationship Store
# =============================================================================


@dataclass
class OrderItem:
    id: int
    supplier_id: int | None = None
    transporter_id: int | None = None
    
    def involves(self, user_id: int) -> bool:
        return same_id(self.supplier_id, user_id) or same_id(self.transporter_id, user_id)


@dataclass
class Order:
    id: int
    consumer_id: int
    items: list[OrderItem] = field(default_factory=list)
    
    def item(self, item_id: str | int) -> OrderItem | None:
        for item in self.items:
            if same_id(item.id, item_id):
                return item
        return None


class InMemoryRelationshipStore(RelationshipStore):
    """Orders kept in a dict, keyed by id."""
    
    def __init__(self, orders: list[Order] | None = None):
        self._orders: dict[int, Order] = {}
        for order in orders or []:
            self.add(order)
    
    def add(self, order: Order) -> Order:
        self._orders[order.id] = order
        return order
    
    def _get(self, order_id: str | int) -> Order | None:
        for key, order in self._orders.items():
            if same_id(key, order_id):
                return order
        return None
    
    async def check_order_relationship(self, identity: Identity, order_id: str) -> bool:
        order = self._get(order_id)
        if order is None:
            return False
        if same_id(order.consumer_id, identity.id):
            return True
        return any(item.involves(identity.id) for item in order.items)
    
    async def check_order_item_relationship(
        self,
        identity: Identity,
        order_id: str,
        item_id: str,
    ) -> bool:
        order = self._get(order_id)
        if order is None:
            return False
        item = order.item(item_id)
        if item is None:
            return False
        return same_id(order.consumer_id, identity.id) or item.involves(identity.id)
