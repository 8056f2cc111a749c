"""Authentication service backed by a Supabase (GoTrue) auth server.

Identity is never stored locally: every request resolves its bearer token
against the auth provider.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from src.config import Settings
from src.services.errors import APIError, AuthenticationError, ClassifiedError, ErrorType

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity resolved from a bearer token."""

    id: str
    email: str


class AuthProviderError(Exception):
    """The auth provider rejected a request."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthClient(Protocol):
    """Operations the API needs from the auth provider."""

    def get_user(self, access_token: str) -> dict[str, Any]: ...

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]: ...

    def sign_up(
        self, email: str, password: str, data: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    def sign_out(self, access_token: str) -> None: ...


class SupabaseAuthClient:
    """Thin httpx client for the GoTrue REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=f"{self.base_url}/auth/v1",
            headers={"apikey": self.api_key},
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = (
            body.get("msg")
            or body.get("error_description")
            or body.get("message")
            or body.get("error")
            or f"Auth provider returned HTTP {response.status_code}"
        )
        raise AuthProviderError(response.status_code, str(message))

    def get_user(self, access_token: str) -> dict[str, Any]:
        """Resolve an access token to the user record."""
        with self._client() as client:
            response = client.get("/user", headers={"Authorization": f"Bearer {access_token}"})
        self._raise_for_status(response)
        return response.json()

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        """Exchange credentials for a session (access token + user)."""
        with self._client() as client:
            response = client.post(
                "/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        self._raise_for_status(response)
        return response.json()

    def sign_up(
        self, email: str, password: str, data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Create an account; the session is absent when email confirmation is pending."""
        with self._client() as client:
            response = client.post(
                "/signup",
                json={"email": email, "password": password, "data": data or {}},
            )
        self._raise_for_status(response)
        return response.json()

    def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        with self._client() as client:
            response = client.post("/logout", headers={"Authorization": f"Bearer {access_token}"})
        self._raise_for_status(response)


def build_auth_client(settings: Settings) -> SupabaseAuthClient:
    """Create the auth client, failing with a config error if unconfigured."""
    if not settings.supabase_url or not settings.auth_api_key:
        logger.error("Supabase auth is not configured (SUPABASE_URL / API key missing)")
        raise APIError(
            ClassifiedError(
                status_code=500,
                error="Configuration error",
                message="Authentication service is not configured.",
                type=ErrorType.CONFIG,
                troubleshooting=(
                    "Set SUPABASE_URL in the server environment",
                    "Set SUPABASE_ANON_KEY or SUPABASE_SERVICE_ROLE_KEY",
                ),
            )
        )
    return SupabaseAuthClient(
        settings.supabase_url,
        settings.auth_api_key,
        timeout=settings.auth_timeout_seconds,
    )


def parse_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization`` header value."""
    if not authorization:
        raise AuthenticationError("No authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Invalid authorization header format")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise AuthenticationError("Invalid authorization header format")
    return token


def user_from_payload(payload: Any) -> AuthenticatedUser | None:
    """Build a user from a provider payload; None if id or email is missing."""
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("id")
    email = payload.get("email")
    if not user_id or not email:
        return None
    return AuthenticatedUser(id=str(user_id), email=str(email))


def resolve_user(auth_client: AuthClient, token: str) -> AuthenticatedUser:
    """Validate a token with the provider. Fails closed and is never retried."""
    try:
        payload = auth_client.get_user(token)
    except Exception as e:
        logger.warning(f"Token validation failed: {type(e).__name__}: {e}")
        raise AuthenticationError("Authentication failed") from e

    user = user_from_payload(payload)
    if user is None:
        logger.warning("Auth provider returned an identity without id or email")
        raise AuthenticationError("Authentication failed")
    return user
