"""
Storage abstractions.

- IdentityStore → user records (with optional credentials)
- RelationshipStore → order / order-item participation
"""

from greenly.storage.base import IdentityStore, RelationshipStore
from greenly.storage.memory import (
    InMemoryIdentityStore,
    InMemoryRelationshipStore,
    Order,
    OrderItem,
)

__all__ = [
    "IdentityStore",
    "RelationshipStore",
    "InMemoryIdentityStore",
    "InMemoryRelationshipStore",
    "Order",
    "OrderItem",
]
