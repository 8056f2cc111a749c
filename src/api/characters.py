"""Character API endpoints."""

import logging
import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    get_character_store,
    get_current_user,
    get_recovery_executor,
    run_store_operation,
)
from src.config import get_settings
from src.models.mixins import utcnow
from src.schemas.character import (
    CharacterCreate,
    CharacterResponse,
    CharacterUpdate,
    ShareTokenResponse,
    SuccessResponse,
)
from src.services.auth import AuthenticatedUser
from src.services.character_store import CharacterStore
from src.services.errors import NotFoundError
from src.services.recovery import RecoveryExecutor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/characters", tags=["characters"])

CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
Store = Annotated[CharacterStore, Depends(get_character_store)]
Executor = Annotated[RecoveryExecutor, Depends(get_recovery_executor)]


@router.get("", response_model=list[CharacterResponse])
def list_characters(current_user: CurrentUser, store: Store, executor: Executor):
    """Get all characters owned by the current user, newest first."""
    return run_store_operation(
        executor, store, lambda: store.list_for_user(current_user.id), "list characters"
    )


@router.post("", response_model=CharacterResponse, status_code=status.HTTP_201_CREATED)
def create_character(
    character_data: CharacterCreate,
    current_user: CurrentUser,
    store: Store,
    executor: Executor,
):
    """Create a new character owned by the current user."""
    values = character_data.to_row()
    # Owner always comes from the token, never from the payload
    values["user_id"] = current_user.id

    character = run_store_operation(
        executor, store, lambda: store.create(current_user.id, values), "create character"
    )
    logger.info(f"Created character {character.id} for user {current_user.id}")
    return character


@router.get("/{character_id}", response_model=CharacterResponse)
def get_character(character_id: str, current_user: CurrentUser, store: Store, executor: Executor):
    """Get a specific character."""
    character = run_store_operation(
        executor,
        store,
        lambda: store.get_for_user(character_id, current_user.id),
        "get character",
    )
    if character is None:
        raise NotFoundError()
    return character


@router.put("/{character_id}", response_model=CharacterResponse)
def update_character(
    character_id: str,
    character_data: CharacterUpdate,
    current_user: CurrentUser,
    store: Store,
    executor: Executor,
):
    """Update a character.

    Values are stored as sent: hit points are not clamped and
    ``hp_current`` may exceed ``hp_max``.
    """
    changes = character_data.to_changes()
    character = run_store_operation(
        executor,
        store,
        lambda: store.update_for_user(character_id, current_user.id, changes),
        "update character",
    )
    if character is None:
        raise NotFoundError("Character not found or you do not have permission to update it")
    return character


@router.delete("/{character_id}", response_model=SuccessResponse)
def delete_character(
    character_id: str, current_user: CurrentUser, store: Store, executor: Executor
):
    """Delete a character after confirming it exists and is owned by the caller."""
    character = run_store_operation(
        executor,
        store,
        lambda: store.get_for_user(character_id, current_user.id),
        "verify character before delete",
    )
    if character is None:
        raise NotFoundError("Character not found or you do not have permission to delete it")

    run_store_operation(executor, store, lambda: store.delete(character), "delete character")
    logger.info(f"Deleted character {character_id} for user {current_user.id}")
    return SuccessResponse(message="Character deleted successfully")


@router.post("/{character_id}/share", response_model=ShareTokenResponse)
def create_share_token(
    character_id: str, current_user: CurrentUser, store: Store, executor: Executor
):
    """Issue a share token, replacing any existing one (owner only)."""
    token = str(uuid.uuid4())
    expires_at = utcnow() + timedelta(days=get_settings().share_token_ttl_days)

    character = run_store_operation(
        executor,
        store,
        lambda: store.set_share_token(character_id, current_user.id, token, expires_at),
        "issue share token",
    )
    if character is None:
        raise NotFoundError()
    return ShareTokenResponse(share_token=token, expires_at=expires_at)


@router.delete("/{character_id}/share", response_model=SuccessResponse)
def revoke_share_token(
    character_id: str, current_user: CurrentUser, store: Store, executor: Executor
):
    """Revoke the share token. Succeeds whether or not a token existed."""
    run_store_operation(
        executor,
        store,
        lambda: store.set_share_token(character_id, current_user.id, None, None),
        "revoke share token",
    )
    return SuccessResponse()
