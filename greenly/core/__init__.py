"""
Core models and utilities.
"""

from greenly.core.models import (
    AddressRecord,
    AddressRef,
    Credentials,
    Identity,
    UserRecord,
    UserResponse,
    UserRole,
)
from greenly.core.utils import generate_id, same_id, utc_now

__all__ = [
    "AddressRecord",
    "AddressRef",
    "Credentials",
    "Identity",
    "UserRecord",
    "UserResponse",
    "UserRole",
    "generate_id",
    "same_id",
    "utc_now",
]
