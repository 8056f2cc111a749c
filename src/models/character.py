"""Character model."""

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, Uuid

from src.database import Base
from src.models.mixins import TimestampMixin


class Character(Base, TimestampMixin):
    """A player character, owned by exactly one user."""

    __tablename__ = "characters"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Opaque id issued by the auth provider
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    class_name = Column(String(100), nullable=False)
    level = Column(Integer, nullable=False, default=1)
    hp_current = Column(Integer, nullable=False, default=1)
    hp_max = Column(Integer, nullable=False, default=1)
    spell_slots = Column(JSON, nullable=False, default=dict)  # {"1": [current, max], ...}
    spells_known = Column(JSON, nullable=False, default=list)  # [{"name": ..., "level": ...}]
    character_data = Column(JSON, nullable=False, default=dict)

    # Anonymous read capability
    share_token = Column(String(36), nullable=True, unique=True, index=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
