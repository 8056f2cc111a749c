"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRegister(BaseModel):
    """User registration request."""

    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    name: str | None = Field(None, max_length=255)


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class AuthResponse(BaseModel):
    """Authentication response with token and user info.

    ``access_token`` is null after registration when the provider requires
    email confirmation before issuing a session.
    """

    access_token: str | None
    token_type: str = "bearer"  # noqa: S105
    expires_in: int | None = None
    user: UserResponse


class TokenVerification(BaseModel):
    """Diagnostic result of validating the caller's bearer token."""

    authenticated: bool
    user: UserResponse | None = None
    error: str | None = None
    timestamp: datetime
