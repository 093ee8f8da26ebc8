"""
FastAPI application factory.

Wires the collaborators (identity store, relationship store) into the
authorization layer. Resource routes are registered by the services
that own them and guard themselves with `Depends(authorize)`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from greenly.auth import (
    IdentityResolver,
    PolicyEvaluator,
    RelationshipOracle,
    auth_router,
    install_error_handlers,
    validate_route_table,
)
from greenly.config import get_settings
from greenly.integrations.sentry import init_sentry
from greenly.storage import (
    IdentityStore,
    InMemoryIdentityStore,
    InMemoryRelationshipStore,
    RelationshipStore,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    settings = get_settings()
    
    if init_sentry():
        logger.info("Sentry error tracking enabled")
    
    logger.info(f"Greenly API starting in {settings.environment} mode")
    
    yield
    
    logger.info("Greenly API shutting down")


def create_app(
    identity_store: IdentityStore | None = None,
    relationship_store: RelationshipStore | None = None,
) -> FastAPI:
    """
    Build the app. Stores default to the in-memory ones.
    
    Raises RouteTableError if the static route table is malformed.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    
    validate_route_table()
    
    app = FastAPI(
        title="Greenly API",
        description="Access-controlled API for consumers, suppliers and transporters",
        version="0.1.0",
        lifespan=lifespan,
    )
    
    identity_store = identity_store or InMemoryIdentityStore()
    relationship_store = relationship_store or InMemoryRelationshipStore()
    
    app.state.identity_store = identity_store
    app.state.identity_resolver = IdentityResolver(identity_store)
    app.state.policy_evaluator = PolicyEvaluator(RelationshipOracle(relationship_store))
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    install_error_handlers(app)
    app.include_router(auth_router)
    
    return app
