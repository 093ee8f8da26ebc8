"""
Shared fixtures: a small marketplace with one user of each role.
"""

import os

# Cheap hashing for tests; set before settings are first read
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

import pytest  # noqa: E402

from greenly.auth.credentials import make_credentials
from greenly.auth.policies import PolicyEvaluator
from greenly.auth.relationships import RelationshipOracle
from greenly.core.models import AddressRecord, Identity, UserRecord, UserRole
from greenly.storage import (
    InMemoryIdentityStore,
    InMemoryRelationshipStore,
    Order,
    OrderItem,
)


ADMIN_ID = 1
CONSUMER_ID = 5
SUPPLIER_ID = 6
TRANSPORTER_ID = 7
OTHER_CONSUMER_ID = 8


@pytest.fixture
def users():
    return [
        UserRecord(
            id=ADMIN_ID,
            email="admin@greenly.pt",
            first_name="Ada",
            type=UserRole.ADMINISTRATOR,
            credentials=make_credentials("admin-password"),
        ),
        UserRecord(
            id=CONSUMER_ID,
            email="consumer@greenly.pt",
            first_name="Carla",
            type=UserRole.CONSUMER,
            addresses=[AddressRecord(id=9, city="Aveiro"), AddressRecord(id=12, city="Porto")],
            credentials=make_credentials("consumer-password"),
        ),
        UserRecord(
            id=SUPPLIER_ID,
            email="supplier@greenly.pt",
            type=UserRole.SUPPLIER,
            credentials=make_credentials("google-subject-6", provider="google"),
        ),
        UserRecord(id=TRANSPORTER_ID, email="transporter@greenly.pt", type=UserRole.TRANSPORTER),
        UserRecord(id=OTHER_CONSUMER_ID, email="other@greenly.pt", type=UserRole.CONSUMER),
    ]


@pytest.fixture
def identity_store(users):
    return InMemoryIdentityStore(users)


@pytest.fixture
def relationship_store():
    return InMemoryRelationshipStore([
        Order(
            id=100,
            consumer_id=CONSUMER_ID,
            items=[
                OrderItem(id=1, supplier_id=SUPPLIER_ID, transporter_id=TRANSPORTER_ID),
                OrderItem(id=2, supplier_id=99, transporter_id=98),
            ],
        ),
        Order(id=200, consumer_id=OTHER_CONSUMER_ID, items=[OrderItem(id=3, supplier_id=99)]),
    ])


@pytest.fixture
def evaluator(relationship_store):
    return PolicyEvaluator(RelationshipOracle(relationship_store))


@pytest.fixture
def identities(users):
    """Identity snapshots keyed by role name."""
    by_id = {u.id: Identity.from_record(u) for u in users}
    return {
        "admin": by_id[ADMIN_ID],
        "consumer": by_id[CONSUMER_ID],
        "supplier": by_id[SUPPLIER_ID],
        "transporter": by_id[TRANSPORTER_ID],
        "other": by_id[OTHER_CONSUMER_ID],
    }
