"""
Relationship oracle adapter.

Thin layer over the RelationshipStore: logs lookups and turns any store
failure into a CollaboratorError so the evaluator can fail closed.
"""

from __future__ import annotations

import logging

from greenly.auth.errors import CollaboratorError
from greenly.core.models import Identity
from greenly.storage.base import RelationshipStore

logger = logging.getLogger(__name__)


class RelationshipOracle:
    """Answers "is this caller linked to this order / item" for the rules."""
    
    def __init__(self, store: RelationshipStore):
        self.store = store
    
    async def is_related_to_order(self, identity: Identity, order_id: str) -> bool:
        try:
            related = await self.store.check_order_relationship(identity, order_id)
        except Exception as e:
            raise CollaboratorError(f"order relationship lookup failed: {e}") from e
        logger.debug(f"User {identity.id} related to order {order_id}: {related}")
        return bool(related)
    
    async def is_related_to_item(self, identity: Identity, order_id: str, item_id: str) -> bool:
        try:
            related = await self.store.check_order_item_relationship(identity, order_id, item_id)
        except Exception as e:
            raise CollaboratorError(f"item relationship lookup failed: {e}") from e
        logger.debug(
            f"User {identity.id} related to item {item_id} of order {order_id}: {related}"
        )
        return bool(related)
