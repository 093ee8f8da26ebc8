"""
Credential verification - passwords and federated subjects.

Both kinds of secret are stored the same way (salted PBKDF2), the
federated one alongside the name of its provider.
"""

from __future__ import annotations

import hashlib
import logging
import secrets

from greenly.config import get_settings
from greenly.core.models import Credentials, UserRecord, UserRole
from greenly.storage.base import IdentityStore

logger = logging.getLogger(__name__)


LOCAL_PROVIDER = "local"


# =============================================================================
# Hashing
# =============================================================================

def _digest(secret: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        secret.encode("utf-8"),
        salt.encode("utf-8"),
        iterations=iterations,
    ).hex()


def hash_password(password: str) -> str:
    """
    Hash a password (or federated subject) using PBKDF2-SHA256.
    
    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    return f"{salt}:{_digest(password, salt, get_settings().password_hash_iterations)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(":")
    except (ValueError, AttributeError):
        return False
    computed = _digest(password, salt, get_settings().password_hash_iterations)
    return secrets.compare_digest(computed, stored_hash)


def make_credentials(secret: str, provider: str = LOCAL_PROVIDER) -> Credentials:
    return Credentials(provider=provider, value=hash_password(secret))


# =============================================================================
# Verification against the store
# =============================================================================

async def authenticate_user(store: IdentityStore, email: str, password: str) -> UserRecord | None:
    """Authenticate user by email and password."""
    user = await store.get_user_by_email(email, include_credentials=True)
    if not user:
        logger.info("Login failed: unknown e-mail")
        return None
    if not user.credentials or user.credentials.provider != LOCAL_PROVIDER:
        logger.info(f"Login failed: user {user.id} has no local password")
        return None
    if not verify_password(password, user.credentials.value):
        logger.info(f"Login failed: wrong password for user {user.id}")
        return None
    return user


async def authenticate_federated(
    store: IdentityStore,
    provider: str,
    subject: str,
    email: str,
) -> UserRecord | None:
    """
    Verify an identity asserted by an external provider.
    
    The provider must match the one the account was created with, and the
    subject must match the stored hash. Unknown e-mails are None here;
    `find_or_create_federated_user` provisions them.
    """
    user = await store.get_user_by_email(email, include_credentials=True)
    if not user or not user.credentials:
        return None
    if user.credentials.provider != provider:
        logger.info(f"Federated login failed: user {user.id} is not a {provider} account")
        return None
    if not verify_password(subject, user.credentials.value):
        logger.info(f"Federated login failed: subject mismatch for user {user.id}")
        return None
    return user


async def find_or_create_federated_user(
    store: IdentityStore,
    provider: str,
    subject: str,
    email: str,
    first_name: str = "",
    last_name: str = "",
) -> UserRecord | None:
    """
    Sign in with a federated identity, creating a CONSUMER on first use.

    Known e-mails go through `authenticate_federated`, so an existing
    account is never taken over by a different provider or subject.
    """
    if await store.get_user_by_email(email) is not None:
        return await authenticate_federated(store, provider, subject, email)

    user = await store.create_user(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=UserRole.CONSUMER,
        credentials=make_credentials(subject, provider),
    )
    logger.info(f"Provisioned {provider} account {user.id}")
    return user
