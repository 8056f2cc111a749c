"""Character schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

# --- Nested character data ---


class SpellKnown(BaseModel):
    """A spell the character knows."""

    name: str = Field(..., max_length=255)
    level: int = 0  # 0 = cantrip

    @model_validator(mode="before")
    @classmethod
    def accept_bare_name(cls, data: Any) -> Any:
        """Older clients send a spell as just its name."""
        if isinstance(data, str):
            return {"name": data}
        return data


class AbilityScores(BaseModel):
    """Ability scores; ranges are not enforced."""

    strength: int | None = None
    dexterity: int | None = None
    constitution: int | None = None
    intelligence: int | None = None
    wisdom: int | None = None
    charisma: int | None = None


class CharacterDetails(BaseModel):
    """Race, background, alignment and ability scores, plus free-form extras."""

    model_config = ConfigDict(extra="allow")

    race: str | None = Field(None, max_length=100)
    background: str | None = Field(None, max_length=100)
    alignment: str | None = Field(None, max_length=50)
    ability_scores: AbilityScores | None = None


# Spell level ("1".."9") -> [current, maximum]
SpellSlots = dict[str, tuple[int, int]]


# --- Character ---


class CharacterCreate(BaseModel):
    """Create a new character. Unknown fields (including ``user_id``) are ignored."""

    name: str = Field(..., min_length=1, max_length=255)
    class_name: str = Field(..., min_length=1, max_length=100)
    level: int = 1
    hp_current: int = 1
    hp_max: int = 1
    spell_slots: SpellSlots = Field(default_factory=dict)
    spells_known: list[SpellKnown] = Field(default_factory=list)
    character_data: CharacterDetails = Field(default_factory=CharacterDetails)

    @field_validator(
        "level",
        "hp_current",
        "hp_max",
        "spell_slots",
        "spells_known",
        "character_data",
        mode="before",
    )
    @classmethod
    def null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        """An explicit null falls back to the field's default."""
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    def to_row(self) -> dict[str, Any]:
        """Column values ready for insert."""
        values = self.model_dump(mode="json", exclude={"character_data"})
        values["character_data"] = self.character_data.model_dump(mode="json", exclude_none=True)
        return values


class CharacterUpdate(BaseModel):
    """Update a character. Only fields present in the request are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    class_name: str | None = Field(None, min_length=1, max_length=100)
    level: int | None = None
    hp_current: int | None = None
    hp_max: int | None = None
    spell_slots: SpellSlots | None = None
    spells_known: list[SpellKnown] | None = None
    character_data: CharacterDetails | None = None

    def to_changes(self) -> dict[str, Any]:
        """Explicitly-set fields as column values."""
        changes = self.model_dump(mode="json", exclude_unset=True, exclude={"character_data"})
        if "character_data" in self.model_fields_set and self.character_data is not None:
            changes["character_data"] = self.character_data.model_dump(
                mode="json", exclude_none=True
            )
        # Columns are NOT NULL; an explicit null means "leave unchanged"
        return {field: value for field, value in changes.items() if value is not None}


class SharedCharacterResponse(BaseModel):
    """Public projection returned through a share link."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    class_name: str
    level: int
    hp_current: int
    hp_max: int
    spell_slots: dict[str, Any]
    spells_known: list[Any]
    character_data: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class CharacterResponse(SharedCharacterResponse):
    """Character as seen by its owner."""

    user_id: str
    share_token: str | None
    token_expires_at: datetime | None


class ShareTokenResponse(BaseModel):
    """Freshly issued share token."""

    share_token: str
    expires_at: datetime


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None
