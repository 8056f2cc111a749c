"""FastAPI dependencies for authentication, the data store and recovery."""

from collections.abc import Callable
from functools import lru_cache
from typing import Annotated, TypeVar

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.services.auth import (
    AuthClient,
    AuthenticatedUser,
    build_auth_client,
    parse_bearer_token,
    resolve_user,
)
from src.services.character_store import CharacterStore
from src.services.errors import APIError, ServiceError
from src.services.recovery import CircuitBreaker, RecoveryExecutor

T = TypeVar("T")


@lru_cache
def get_circuit_breaker() -> CircuitBreaker:
    """Process-wide breaker shared by every request."""
    settings = get_settings()
    return CircuitBreaker(
        failure_threshold=settings.circuit_breaker_threshold,
        cooldown_seconds=settings.circuit_breaker_cooldown_seconds,
    )


def get_recovery_executor(
    breaker: Annotated[CircuitBreaker, Depends(get_circuit_breaker)],
) -> RecoveryExecutor:
    """Get a retrying executor bound to the shared breaker."""
    settings = get_settings()
    return RecoveryExecutor(
        breaker,
        max_retries=settings.retry_max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
        backoff_max_seconds=settings.retry_backoff_max_seconds,
    )


def get_auth_client() -> AuthClient:
    """Get the auth provider client."""
    return build_auth_client(get_settings())


def get_character_store(db: Annotated[Session, Depends(get_db)]) -> CharacterStore:
    """Get the character table gateway for this request's session."""
    return CharacterStore(db)


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """Raw bearer token from the ``Authorization`` header."""
    return parse_bearer_token(authorization)


def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
) -> AuthenticatedUser:
    """Get the current authenticated user from the bearer token."""
    # The header is checked before the auth client is built
    return resolve_user(auth_client, token)


def run_store_operation(
    executor: RecoveryExecutor,
    store: CharacterStore,
    operation: Callable[[], T],
    description: str,
) -> T:
    """Run a store call through the executor and classify any failure."""

    def attempt() -> T:
        try:
            return operation()
        except Exception:
            # Leave the session usable for the next attempt
            store.db.rollback()
            raise

    try:
        return executor.run(attempt, description=description)
    except APIError:
        raise
    except Exception as e:
        raise ServiceError(e) from e
