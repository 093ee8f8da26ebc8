"""
Core data models for the greenly platform.

UserRecord is what the identity store hands back. Identity is the
immutable per-request snapshot the authorization layer works with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, Enum):
    """Platform-wide account type."""
    
    CONSUMER = "CONSUMER"
    SUPPLIER = "SUPPLIER"
    TRANSPORTER = "TRANSPORTER"
    ADMINISTRATOR = "ADMINISTRATOR"


# =============================================================================
# Store Records
# =============================================================================


class Credentials(BaseModel):
    """Stored credential: a password hash or a hashed federated subject."""
    
    provider: str = "local"
    value: str


class AddressRecord(BaseModel):
    id: int
    street: str = ""
    city: str = ""
    country: str = ""
    postal_code: str = ""
    is_shipping: bool = False
    is_billing: bool = False


class UserRecord(BaseModel):
    """User as stored by the identity store."""
    
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    type: UserRole = UserRole.CONSUMER
    addresses: list[AddressRecord] = Field(default_factory=list)
    
    # Only populated when the store is asked for credentials
    credentials: Credentials | None = None


class UserResponse(BaseModel):
    """User data returned to client (no sensitive fields)."""
    
    id: int
    email: str
    first_name: str
    last_name: str
    type: UserRole


# =============================================================================
# Request-scoped Identity
# =============================================================================


@dataclass(frozen=True)
class AddressRef:
    id: int


@dataclass(frozen=True)
class Identity:
    """
    Snapshot of the caller, taken once per request.
    
    Never mutated; role or address changes show up on the next request.
    """
    
    id: int
    role: UserRole
    addresses: tuple[AddressRef, ...] = field(default_factory=tuple)
    
    @property
    def is_administrator(self) -> bool:
        return self.role == UserRole.ADMINISTRATOR
    
    @property
    def address_ids(self) -> frozenset[int]:
        return frozenset(a.id for a in self.addresses)
    
    @classmethod
    def from_record(cls, record: UserRecord) -> Identity:
        return cls(
            id=record.id,
            role=record.type,
            addresses=tuple(AddressRef(id=a.id) for a in record.addresses),
        )
