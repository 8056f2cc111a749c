"""Authentication API endpoints.

Credentials are handled by the auth provider; these endpoints only forward
them and reshape the provider's session into the API's response models.
"""

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, status

from src.api.dependencies import get_auth_client, get_bearer_token, get_current_user
from src.schemas.auth import AuthResponse, TokenVerification, UserLogin, UserRegister, UserResponse
from src.services.auth import (
    AuthClient,
    AuthenticatedUser,
    AuthProviderError,
    parse_bearer_token,
    resolve_user,
    user_from_payload,
)
from src.services.errors import APIError, AuthenticationError, PayloadValidationError, ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _session_response(payload: dict[str, Any]) -> AuthResponse:
    """Build an AuthResponse from a provider session or bare user payload."""
    # Sign-in returns {access_token, user}; sign-up without confirmation returns the user itself
    user = user_from_payload(payload.get("user") or payload)
    if user is None:
        raise AuthenticationError("Auth provider returned no user")
    return AuthResponse(
        access_token=payload.get("access_token"),
        expires_in=payload.get("expires_in"),
        user=UserResponse(id=user.id, email=user.email),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
):
    """Register a new user."""
    metadata = {"name": user_data.name} if user_data.name else None
    try:
        payload = auth_client.sign_up(user_data.email, user_data.password, metadata)
    except AuthProviderError as e:
        raise PayloadValidationError(f"Registration failed: {e}") from e
    except APIError:
        raise
    except Exception as e:
        raise ServiceError(e) from e

    logger.info("Registered new user")
    return _session_response(payload)


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
):
    """Login with email and password."""
    try:
        payload = auth_client.sign_in_with_password(credentials.email, credentials.password)
    except AuthProviderError as e:
        raise AuthenticationError("Incorrect email or password") from e
    except APIError:
        raise
    except Exception as e:
        raise ServiceError(e) from e

    return _session_response(payload)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: Annotated[AuthenticatedUser, Depends(get_current_user)]):
    """Get current user information."""
    return UserResponse(id=current_user.id, email=current_user.email)


@router.post("/logout")
def logout(
    token: Annotated[str, Depends(get_bearer_token)],
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
):
    """Revoke the caller's session at the provider."""
    try:
        auth_client.sign_out(token)
    except AuthProviderError as e:
        raise AuthenticationError("Authentication failed") from e
    except Exception as e:
        raise ServiceError(e) from e
    return {"message": "Logged out successfully"}


@router.get("/verify", response_model=TokenVerification)
def verify_token(
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
    authorization: Annotated[str | None, Header()] = None,
):
    """Report whether the caller's token is valid. Always 200."""
    now = datetime.now(UTC)
    try:
        user = resolve_user(auth_client, parse_bearer_token(authorization))
    except AuthenticationError as e:
        return TokenVerification(authenticated=False, error=e.classified.message, timestamp=now)
    return TokenVerification(
        authenticated=True,
        user=UserResponse(id=user.id, email=user.email),
        timestamp=now,
    )
