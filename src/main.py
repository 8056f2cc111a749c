"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api import auth, characters, dice, share
from src.api.dependencies import (
    get_character_store,
    get_recovery_executor,
    run_store_operation,
)
from src.api.error_handlers import register_error_handlers
from src.config import get_settings
from src.logging_config import configure_logging
from src.services.character_store import CharacterStore
from src.services.errors import APIError
from src.services.recovery import RecoveryExecutor

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info(f"Starting Grimoire API ({settings.environment})")
    yield


app = FastAPI(
    title="Grimoire API",
    description="D&D character manager with owner-scoped storage and share links",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development (Expo web / dev server)
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_error_handlers(app)

# Register routers
app.include_router(auth.router)
app.include_router(characters.router)
app.include_router(share.router)
app.include_router(dice.router)


@app.get("/health")
def health_check(
    store: Annotated[CharacterStore, Depends(get_character_store)],
    executor: Annotated[RecoveryExecutor, Depends(get_recovery_executor)],
):
    """Health check: configuration presence and database connectivity."""
    supabase_url = settings.supabase_url or ""
    configuration = {
        "has_supabase_url": bool(supabase_url),
        "has_anon_key": bool(settings.supabase_anon_key),
        "has_service_key": bool(settings.supabase_service_role_key),
        "supabase_url_https": supabase_url.startswith("https://"),
    }

    try:
        run_store_operation(executor, store, store.ping, "health check")
        database = {"connected": True}
    except APIError as e:
        classified = e.classified
        logger.warning(f"Health check database failure: {classified.type}")
        database = {"connected": False, "error": classified.message, "type": str(classified.type)}

    return {
        "status": "healthy" if database["connected"] else "degraded",
        "environment": settings.environment,
        "configuration": configuration,
        "database": database,
        "breaker": str(executor.breaker.state),
        "timestamp": datetime.now(UTC).isoformat(),
    }
