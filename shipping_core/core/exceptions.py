"""
Shipping Core Exception Hierarchy

Every failure that leaves a carrier is a ShippingError. Provider-specific
exceptions and raw HTTP errors are funneled through normalize_error()
first, so callers only ever handle one taxonomy.

Exception Hierarchy:
    ShippingError
    ├── ShippingConfigError        CONFIG_ERROR
    ├── ShippingAuthError          AUTH_ERROR
    ├── ShippingValidationError    VALIDATION_ERROR
    ├── ShippingRateError          RATE_ERROR
    ├── ShippingCreateError        CREATE_ERROR
    ├── ShippingTrackError         TRACK_ERROR
    ├── ShippingNotFoundError      NOT_FOUND
    ├── ShippingNotImplementedError NOT_IMPLEMENTED
    └── ShippingTransientError     TRANSIENT (retryable)
"""
import enum
import logging
from typing import Any, Dict, Optional, Type

import httpx

from shipping_core.utils.sanitizer import redact_secrets

logger = logging.getLogger(__name__)

# Provider text kept on errors is truncated, not redacted
MESSAGE_MAX_LENGTH = 500


class ErrorKind(str, enum.Enum):
    """Canonical error kinds."""
    CONFIG_ERROR = "CONFIG_ERROR"  # Missing/invalid credentials
    AUTH_ERROR = "AUTH_ERROR"  # Login rejected by provider
    VALIDATION_ERROR = "VALIDATION_ERROR"  # Request data rejected before or by provider
    RATE_ERROR = "RATE_ERROR"
    CREATE_ERROR = "CREATE_ERROR"
    TRACK_ERROR = "TRACK_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    TRANSIENT = "TRANSIENT"  # Network/5xx, safe to retry
    UNKNOWN = "UNKNOWN"


class ShippingError(Exception):
    """
    Canonical shipping error.

    Attributes:
        kind: ErrorKind for programmatic handling
        message: Human-readable; may echo provider text, so pass it through
            sanitize_for_logging() before logging
        provider: Lower-case provider id ("shiprocket", "ups", ...)
        retryable: True when repeating the call may succeed
        status_code: Provider HTTP status, when there was one
        details: Small sanitized context for logs; never a raw payload
    """

    default_kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        provider: str,
        kind: Optional[ErrorKind] = None,
        retryable: Optional[bool] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.kind = ErrorKind(kind) if kind is not None else self.default_kind
        self.message = message
        self.provider = provider
        self.retryable = (self.kind == ErrorKind.TRANSIENT) if retryable is None else retryable
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @classmethod
    def for_kind(cls, kind: ErrorKind, message: str, provider: str, **kwargs) -> "ShippingError":
        """Build the subclass registered for a kind."""
        error_cls = _ERROR_CLASSES.get(ErrorKind(kind), ShippingError)
        return error_cls(message, provider, kind=kind, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "provider": self.provider,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "details": redact_secrets(self.details),
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind.value!r}, "
            f"provider={self.provider!r}, message={self.message!r})"
        )


class ShippingConfigError(ShippingError):
    """Carrier credentials are missing or unusable."""
    default_kind = ErrorKind.CONFIG_ERROR


class ShippingAuthError(ShippingError):
    """Provider rejected the login."""
    default_kind = ErrorKind.AUTH_ERROR


class ShippingValidationError(ShippingError):
    """Request data is invalid for this provider."""
    default_kind = ErrorKind.VALIDATION_ERROR


class ShippingRateError(ShippingError):
    default_kind = ErrorKind.RATE_ERROR


class ShippingCreateError(ShippingError):
    default_kind = ErrorKind.CREATE_ERROR


class ShippingTrackError(ShippingError):
    default_kind = ErrorKind.TRACK_ERROR


class ShippingNotFoundError(ShippingError):
    default_kind = ErrorKind.NOT_FOUND


class ShippingNotImplementedError(ShippingError):
    """Carrier is registered but its integration is not built yet."""
    default_kind = ErrorKind.NOT_IMPLEMENTED


class ShippingTransientError(ShippingError):
    """Network failure or provider 5xx."""
    default_kind = ErrorKind.TRANSIENT


_ERROR_CLASSES: Dict[ErrorKind, Type[ShippingError]] = {
    ErrorKind.CONFIG_ERROR: ShippingConfigError,
    ErrorKind.AUTH_ERROR: ShippingAuthError,
    ErrorKind.VALIDATION_ERROR: ShippingValidationError,
    ErrorKind.RATE_ERROR: ShippingRateError,
    ErrorKind.CREATE_ERROR: ShippingCreateError,
    ErrorKind.TRACK_ERROR: ShippingTrackError,
    ErrorKind.NOT_FOUND: ShippingNotFoundError,
    ErrorKind.NOT_IMPLEMENTED: ShippingNotImplementedError,
    ErrorKind.TRANSIENT: ShippingTransientError,
}


def kind_for_status(status_code: Optional[int], fallback: ErrorKind = ErrorKind.UNKNOWN) -> ErrorKind:
    """
    Default HTTP status -> ErrorKind mapping.

    401/403 -> AUTH_ERROR, 404 -> NOT_FOUND, 5xx -> TRANSIENT,
    anything else -> fallback.
    """
    if status_code in (401, 403):
        return ErrorKind.AUTH_ERROR
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code is not None and status_code >= 500:
        return ErrorKind.TRANSIENT
    return fallback


def normalize_error(
    raw: BaseException,
    provider: str,
    fallback_kind: ErrorKind = ErrorKind.UNKNOWN,
) -> ShippingError:
    """
    Map any failure raised while talking to a provider into a ShippingError.

    Args:
        raw: The exception that escaped the provider call
        provider: Provider id for the resulting error
        fallback_kind: Kind used when nothing more specific applies
            (usually the operation's kind, e.g. RATE_ERROR)

    Returns:
        ShippingError; an existing ShippingError is returned unchanged
    """
    if isinstance(raw, ShippingError):
        return raw

    if isinstance(raw, httpx.TimeoutException):
        return ShippingError.for_kind(
            ErrorKind.TRANSIENT,
            f"{provider} request timed out",
            provider,
        )

    if isinstance(raw, httpx.HTTPStatusError):
        status = raw.response.status_code
        return ShippingError.for_kind(
            kind_for_status(status, fallback_kind),
            f"{provider} returned HTTP {status}",
            provider,
            status_code=status,
        )

    if isinstance(raw, httpx.TransportError):
        return ShippingError.for_kind(
            ErrorKind.TRANSIENT,
            f"Network error talking to {provider}: {raw.__class__.__name__}",
            provider,
        )

    # Provider API errors carry the HTTP status they came with
    status_code = getattr(raw, "status_code", None)
    message = getattr(raw, "message", None) or str(raw) or "Unknown error occurred"
    return ShippingError.for_kind(
        kind_for_status(status_code, fallback_kind),
        str(message)[:MESSAGE_MAX_LENGTH],
        provider,
        status_code=status_code,
        details={"error_type": raw.__class__.__name__},
    )
