"""Owner-scoped access to the characters table.

Every lookup, update and delete filters on both the character id and the
owning user id, so a character owned by someone else is indistinguishable
from one that does not exist.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from src.models.character import Character
from src.models.mixins import utcnow

logger = logging.getLogger(__name__)

# Never writable through an update payload
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


def parse_character_id(character_id: str | uuid.UUID) -> uuid.UUID | None:
    """Parse a path id; malformed ids resolve to None (treated as not found)."""
    if isinstance(character_id, uuid.UUID):
        return character_id
    try:
        return uuid.UUID(str(character_id))
    except ValueError:
        return None


class OwnershipViolationError(Exception):
    """An insert payload named an owner other than the authenticated caller."""


class CharacterStore:
    """Table gateway for characters, one unit of work per method call."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _scoped(self, character_id: str | uuid.UUID, user_id: str):
        parsed = parse_character_id(character_id)
        if parsed is None:
            return None
        return self.db.query(Character).filter(Character.id == parsed, Character.user_id == user_id)

    def list_for_user(self, user_id: str) -> list[Character]:
        """All characters owned by ``user_id``, newest first."""
        return (
            self.db.query(Character)
            .filter(Character.user_id == user_id)
            .order_by(Character.created_at.desc())
            .all()
        )

    def get_for_user(self, character_id: str | uuid.UUID, user_id: str) -> Character | None:
        query = self._scoped(character_id, user_id)
        return query.first() if query is not None else None

    def create(self, user_id: str, values: dict[str, Any]) -> Character:
        """Insert a character; ``values['user_id']`` must equal the caller."""
        if values.get("user_id") != user_id:
            logger.error("Refusing insert: payload owner does not match authenticated user")
            raise OwnershipViolationError("user_id does not match the authenticated user")

        character = Character(**values)
        self.db.add(character)
        self.db.commit()
        self.db.refresh(character)
        return character

    def update_for_user(
        self, character_id: str | uuid.UUID, user_id: str, changes: dict[str, Any]
    ) -> Character | None:
        """Apply ``changes`` to an owned character; None if not found."""
        character = self.get_for_user(character_id, user_id)
        if character is None:
            return None

        for field, value in changes.items():
            if field in PROTECTED_FIELDS:
                continue
            setattr(character, field, value)
        character.updated_at = utcnow()

        self.db.commit()
        self.db.refresh(character)
        return character

    def delete(self, character: Character) -> None:
        self.db.delete(character)
        self.db.commit()

    def set_share_token(
        self,
        character_id: str | uuid.UUID,
        user_id: str,
        token: str | None,
        expires_at: datetime | None,
    ) -> Character | None:
        """Overwrite (or clear) the share token of an owned character."""
        return self.update_for_user(
            character_id,
            user_id,
            {"share_token": token, "token_expires_at": expires_at},
        )

    def get_by_share_token(self, token: str, now: datetime | None = None) -> Character | None:
        """Character behind an unexpired share token, else None."""
        now = now or utcnow()
        return (
            self.db.query(Character)
            .filter(Character.share_token == token, Character.token_expires_at > now)
            .first()
        )

    def ping(self) -> None:
        """Round-trip to the database."""
        self.db.execute(text("SELECT 1"))
