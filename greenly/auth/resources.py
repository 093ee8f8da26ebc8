"""
Resource kinds and the route table.

This defines WHICH resource a route touches, not WHO may touch it.
The rules live in policies.py.

The route table is the single source of truth for "is this route
protected and how". Adding a protected route means adding it here.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ResourceKind(str, Enum):
    """Semantic tag for a protected route, independent of its literal path."""
    
    # Users
    ALL_USERS = "ALL_USERS"
    SINGLE_USER = "SINGLE_USER"
    
    # Addresses
    ALL_ADDRESSES = "ALL_ADDRESSES"
    SINGLE_ADDRESS = "SINGLE_ADDRESS"
    
    # Notifications
    ALL_NOTIFICATIONS = "ALL_NOTIFICATIONS"
    SINGLE_NOTIFICATION = "SINGLE_NOTIFICATION"
    
    # Orders
    ALL_USER_ORDERS = "ALL_USER_ORDERS"
    ALL_ORDERS = "ALL_ORDERS"
    SINGLE_ORDER = "SINGLE_ORDER"
    SINGLE_ORDER_ITEM = "SINGLE_ORDER_ITEM"
    
    # Store
    SINGLE_PRODUCT = "SINGLE_PRODUCT"
    ALL_CATEGORIES = "ALL_CATEGORIES"
    SINGLE_CATEGORY = "SINGLE_CATEGORY"
    
    # Consumer-only collections
    ALL_CART_ITEMS = "ALL_CART_ITEMS"
    SINGLE_CART_ITEM = "SINGLE_CART_ITEM"
    ALL_WISHLIST_ITEMS = "ALL_WISHLIST_ITEMS"
    SINGLE_WISHLIST_ITEM = "SINGLE_WISHLIST_ITEM"
    
    # Not in the table: always denied
    UNCLASSIFIED = "UNCLASSIFIED"


# =============================================================================
# Route Table
# =============================================================================


ROUTE_TABLE: Mapping[str, ResourceKind] = MappingProxyType({
    "/user": ResourceKind.ALL_USERS,
    "/user/{user_id}": ResourceKind.SINGLE_USER,
    "/user/{user_id}/addresses": ResourceKind.ALL_ADDRESSES,
    "/user/{user_id}/addresses/{address_id}": ResourceKind.SINGLE_ADDRESS,
    "/user/{user_id}/notifications": ResourceKind.ALL_NOTIFICATIONS,
    "/user/{user_id}/notifications/{notification_id}": ResourceKind.SINGLE_NOTIFICATION,
    "/user/{user_id}/orders": ResourceKind.ALL_USER_ORDERS,
    "/user/{user_id}/cart": ResourceKind.ALL_CART_ITEMS,
    "/user/{user_id}/cart/{index}": ResourceKind.SINGLE_CART_ITEM,
    "/user/{user_id}/wishlist": ResourceKind.ALL_WISHLIST_ITEMS,
    "/user/{user_id}/wishlist/{product_id}": ResourceKind.SINGLE_WISHLIST_ITEM,
    "/store/products/{product_id}": ResourceKind.SINGLE_PRODUCT,
    "/store/orders": ResourceKind.ALL_ORDERS,
    "/store/orders/{order_id}": ResourceKind.SINGLE_ORDER,
    "/store/orders/{order_id}/{item_id}": ResourceKind.SINGLE_ORDER_ITEM,
    "/store/categories": ResourceKind.ALL_CATEGORIES,
    "/store/categories/{category_id}": ResourceKind.SINGLE_CATEGORY,
})


def normalize_template(route_template: str) -> str:
    """Strip a trailing slash so "/user/" and "/user" classify the same."""
    if len(route_template) > 1 and route_template.endswith("/"):
        return route_template.rstrip("/") or "/"
    return route_template


def classify(
    route_template: str,
    table: Mapping[str, ResourceKind] = ROUTE_TABLE,
) -> ResourceKind:
    """
    Map a route template to its resource kind.
    
    Unknown templates are UNCLASSIFIED, which the evaluator always denies.
    """
    return table.get(normalize_template(route_template), ResourceKind.UNCLASSIFIED)
