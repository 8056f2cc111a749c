"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AuthResponse, TokenVerification, UserLogin, UserRegister, UserResponse
from src.schemas.character import (
    CharacterCreate,
    CharacterResponse,
    CharacterUpdate,
    SharedCharacterResponse,
    ShareTokenResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "TokenVerification",
    "CharacterCreate",
    "CharacterUpdate",
    "CharacterResponse",
    "SharedCharacterResponse",
    "ShareTokenResponse",
]
