"""Public share-link endpoint (no authentication)."""

import re

from fastapi import APIRouter

from src.api.characters import Executor, Store
from src.api.dependencies import run_store_operation
from src.schemas.character import SharedCharacterResponse
from src.services.errors import NotFoundError, PayloadValidationError

router = APIRouter(prefix="/api/v1/share", tags=["share"])

SHARE_TOKEN_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@router.get("/{token}", response_model=SharedCharacterResponse)
def get_shared_character(token: str, store: Store, executor: Executor):
    """Resolve a share token to a read-only view of the character.

    Unknown and expired tokens produce the same 404.
    """
    if not SHARE_TOKEN_RE.match(token):
        raise PayloadValidationError("Invalid token format")

    character = run_store_operation(
        executor,
        store,
        lambda: store.get_by_share_token(token.lower()),
        "resolve share token",
    )
    if character is None:
        raise NotFoundError("Character not found or token expired")
    return character
