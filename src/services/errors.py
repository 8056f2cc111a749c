"""Error classification for data-store and auth failures.

Every failure that reaches an API handler is turned into a ``ClassifiedError``
before it is serialized, so raw backend errors never reach the caller.
Classification is a pure function of the exception: rules are checked in
order and the first match wins.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy.exc import NoResultFound

from src.services.recovery import error_text, is_transient_error


class ErrorType(StrEnum):
    """Machine-readable error categories returned in the ``type`` field."""

    NETWORK = "network_error"
    AUTH = "auth_error"
    CONFIG = "config_error"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    DATABASE = "database_error"


NETWORK_TROUBLESHOOTING = (
    "Check your internet connection",
    "The database service may be temporarily unavailable; try again in a few moments",
    "If the problem persists, check the service status page",
)

CONFIG_TROUBLESHOOTING = (
    "Verify SUPABASE_URL points at the correct project",
    "Verify SUPABASE_ANON_KEY / SUPABASE_SERVICE_ROLE_KEY are set and current",
    "Restart the server after changing environment variables",
)

AUTH_PATTERNS = ("jwt", "authentication", "permission", "401")
CONFIG_PATTERNS = (
    "invalid api key",
    "invalid project",
    "service key",
    "service_role",
    "no api key found",
)
NOT_FOUND_CODES = ("PGRST116",)


@dataclass(frozen=True)
class ClassifiedError:
    """Response shape chosen for a failure."""

    status_code: int
    error: str
    message: str
    type: ErrorType
    troubleshooting: tuple[str, ...] = field(default_factory=tuple)
    details: Any = None
    code: str | None = None
    hint: str | None = None

    def to_payload(self, timestamp: datetime | None = None) -> dict[str, Any]:
        """Render the JSON body; ``timestamp`` defaults to now."""
        timestamp = timestamp or datetime.now(UTC)
        payload: dict[str, Any] = {
            "error": self.error,
            "message": self.message,
            "type": str(self.type),
            "timestamp": timestamp.isoformat(),
        }
        if self.troubleshooting:
            payload["troubleshooting"] = list(self.troubleshooting)
        for key in ("details", "code", "hint"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


class APIError(Exception):
    """An error that already knows how it should be rendered."""

    def __init__(self, classified: ClassifiedError) -> None:
        super().__init__(classified.message)
        self.classified = classified

    @property
    def status_code(self) -> int:
        return self.classified.status_code


class AuthenticationError(APIError):
    """Missing, malformed or rejected credentials."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(
            ClassifiedError(
                status_code=401,
                error="Unauthorized",
                message=message,
                type=ErrorType.AUTH,
            )
        )


class NotFoundError(APIError):
    """Row absent under an owner-scoped (or share-token) query."""

    def __init__(self, message: str = "Character not found") -> None:
        super().__init__(
            ClassifiedError(
                status_code=404,
                error="Not found",
                message=message,
                type=ErrorType.NOT_FOUND,
            )
        )


class PayloadValidationError(APIError):
    """Request payload or path parameter rejected before touching the store."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(
            ClassifiedError(
                status_code=400,
                error="Invalid request",
                message=message,
                type=ErrorType.VALIDATION,
                details=details,
            )
        )


class ServiceError(APIError):
    """A backend failure that has been run through the classifier."""

    def __init__(self, exc: BaseException) -> None:
        super().__init__(classify_error(exc))


def _error_attr(exc: BaseException, name: str) -> Any:
    """Read ``name`` from the error or the DB-API error it wraps."""
    value = getattr(exc, name, None)
    if value is None:
        value = getattr(getattr(exc, "orig", None), name, None)
    return value


def _error_code(exc: BaseException) -> str | None:
    code = _error_attr(exc, "pgcode") or _error_attr(exc, "code")
    return str(code) if code is not None else None


def _contains_any(exc: BaseException, patterns: tuple[str, ...]) -> bool:
    text = error_text(exc)
    return any(pattern in text for pattern in patterns)


def _is_network(exc: BaseException) -> bool:
    return bool(getattr(exc, "is_network_error", False)) or is_transient_error(exc)


def _is_auth(exc: BaseException) -> bool:
    return _contains_any(exc, AUTH_PATTERNS)


def _is_config(exc: BaseException) -> bool:
    return _contains_any(exc, CONFIG_PATTERNS)


def _is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, NoResultFound) or _error_code(exc) in NOT_FOUND_CODES


def _network_error(exc: BaseException) -> ClassifiedError:
    return ClassifiedError(
        status_code=503,
        error="Connection error",
        message="Could not reach the database server. Check your connection and try again.",
        type=ErrorType.NETWORK,
        troubleshooting=NETWORK_TROUBLESHOOTING,
    )


def _auth_error(exc: BaseException) -> ClassifiedError:
    return ClassifiedError(
        status_code=401,
        error="Authentication error",
        message="Session expired or insufficient permissions. Please sign in again.",
        type=ErrorType.AUTH,
    )


def _config_error(exc: BaseException) -> ClassifiedError:
    return ClassifiedError(
        status_code=500,
        error="Configuration error",
        message="The server is not configured correctly to reach the database.",
        type=ErrorType.CONFIG,
        troubleshooting=CONFIG_TROUBLESHOOTING,
    )


def _not_found(exc: BaseException) -> ClassifiedError:
    return ClassifiedError(
        status_code=404,
        error="Not found",
        message="Character not found",
        type=ErrorType.NOT_FOUND,
    )


def _database_error(exc: BaseException) -> ClassifiedError:
    orig = getattr(exc, "orig", None)
    message = str(orig if orig is not None else exc).strip()
    return ClassifiedError(
        status_code=500,
        error="Database error",
        message=message or "Internal server error. Please try again shortly.",
        type=ErrorType.DATABASE,
        details=_error_attr(exc, "details"),
        code=_error_code(exc),
        hint=_error_attr(exc, "hint"),
    )


ClassificationRule = tuple[
    Callable[[BaseException], bool], Callable[[BaseException], ClassifiedError]
]

RULES: tuple[ClassificationRule, ...] = (
    (_is_network, _network_error),
    (_is_auth, _auth_error),
    (_is_config, _config_error),
    (_is_not_found, _not_found),
)


def classify_error(exc: BaseException) -> ClassifiedError:
    """Map an exception to exactly one error category."""
    if isinstance(exc, APIError):
        return exc.classified
    for matches, build in RULES:
        if matches(exc):
            return build(exc)
    return _database_error(exc)
