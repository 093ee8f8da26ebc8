"""
Storage abstraction layer.

The authorization layer never talks to a database directly. It goes
through these two interfaces, which are implemented over whatever
persistence the deployment uses (Prisma-backed service, PostgreSQL,
in-memory for development).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from greenly.core.models import Credentials, Identity, UserRecord, UserRole


# =============================================================================
# Storage Interfaces
# =============================================================================


class IdentityStore(ABC):
    """
    Lookup of user records.
    
    Implementations return None for a missing user and raise for
    infrastructure failures.
    """
    
    @abstractmethod
    async def get_user_record(
        self,
        user_id: int,
        include_credentials: bool = False,
    ) -> UserRecord | None:
        """Get a user by ID."""
        pass
    
    @abstractmethod
    async def get_user_by_email(
        self,
        email: str,
        include_credentials: bool = False,
    ) -> UserRecord | None:
        """Get a user by e-mail address."""
        pass
    
    @abstractmethod
    async def create_user(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
        role: UserRole = UserRole.CONSUMER,
        credentials: Credentials | None = None,
    ) -> UserRecord:
        """
        Create a user and return it without credentials.
        
        Raises ValueError if the e-mail is already registered.
        """
        pass


class RelationshipStore(ABC):
    """
    Answers whether a user takes part in an order.
    
    A user is related to an order as its consumer, or as the supplier or
    transporter of one of its items.
    """
    
    @abstractmethod
    async def check_order_relationship(self, identity: Identity, order_id: str) -> bool:
        """Is the user linked to the order at all?"""
        pass
    
    @abstractmethod
    async def check_order_item_relationship(
        self,
        identity: Identity,
        order_id: str,
        item_id: str,
    ) -> bool:
        """Is the user linked to this specific item of the order?"""
        pass
