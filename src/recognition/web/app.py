"""FastAPI application for recognition rule authoring.

Serves the administrator CRUD and tooling endpoints plus the tree-form
feed that disconnected clients cache.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from recognition.classification.cache import RuleCache
from recognition.classification.classifier import RoleClassifier
from recognition.core.config import Settings
from recognition.core.logging import configure_logging
from recognition.db.engine import DatabaseManager
from recognition.repositories.postgres import PostgresRoleRepository, PostgresRuleRepository
from recognition.repositories.protocols import RoleRepository, RuleRepository
from recognition.rules.service import RecognitionRuleService
from recognition.rules.store import InMemoryRoleStore, InMemoryRuleStore
from recognition.web.rules_router import router as rules_router

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = "0.1.0"
    rules_cached: int = 0
    database: str | None = None


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    db_manager = getattr(app.state, "db_manager", None)
    if db_manager is not None and app.state.settings.database.create_tables:
        await db_manager.create_tables()
    yield
    if db_manager is not None:
        await db_manager.close()


def create_app(
    settings: Settings | None = None,
    rule_repository: RuleRepository | None = None,
    role_repository: RoleRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can build isolated apps with their
    own stores. Repositories default to SQL when ``RECOGNITION_DB_URL``
    is set and to in-memory stores otherwise.
    """
    if settings is None:
        settings = Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Family Role Recognition",
        description="Authoring and distribution of family recognition rules",
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    db_manager: DatabaseManager | None = None
    if settings.database.url and (rule_repository is None or role_repository is None):
        db_manager = DatabaseManager.from_config(settings.database)
        if rule_repository is None:
            rule_repository = PostgresRuleRepository(db_manager)
        if role_repository is None:
            role_repository = PostgresRoleRepository(db_manager)
        logger.info("Using SQL rule storage")
    else:
        if role_repository is None:
            role_repository = InMemoryRoleStore()
        if rule_repository is None:
            roles = role_repository if isinstance(role_repository, InMemoryRoleStore) else None
            rule_repository = InMemoryRuleStore(roles=roles)
        logger.info("Using in-memory rule storage")

    service = RecognitionRuleService(
        repository=rule_repository,
        role_repository=role_repository,
        config=settings.formula,
    )
    rule_cache = RuleCache.from_source(rule_repository, settings.cache)

    # Store on app state for access in route handlers
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.rule_repository = rule_repository
    app.state.role_repository = role_repository
    app.state.rule_service = service
    app.state.rule_cache = rule_cache
    app.state.classifier = RoleClassifier(rule_cache)

    app.include_router(rules_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        snapshot = rule_cache.snapshot
        database = None
        if db_manager is not None:
            database = "ok" if await db_manager.ping() else "unavailable"
        return HealthResponse(
            status="healthy" if database != "unavailable" else "degraded",
            service="recognition-rules",
            rules_cached=len(snapshot) if snapshot else 0,
            database=database,
        )

    return app
