"""SQLAlchemy models."""

from src.models.character import Character

__all__ = [
    "Character",
]
