"""
Exception Hierarchy & Error Handling Framework
===============================================
Type-safe exception taxonomy with structured context propagation,
retry classification, and observability integration.

Every domain error declares an ErrorClass so the retry policy and the
degradation chain can decide between retrying in place, escalating to
the next tier, or propagating to the caller.

Architecture: Railway-Oriented Programming + Error Algebra
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from core.enums import ErrorClass, ErrorSeverity

# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================


class ContentAutomationException(Exception):
    """
    Root exception for all application errors.

    Implements structured error context with:
    - Unique error ID for log correlation
    - Severity classification for alerting
    - Structured context dictionary
    - Retry classification (retryable / fast-fail / fatal)
    - Timestamp for temporal analysis
    """

    default_error_class: ErrorClass = ErrorClass.RETRYABLE

    def __init__(
        self,
        message: str,
        *,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[dict[str, Any]] = None,
        error_code: Optional[str] = None,
        error_class: Optional[ErrorClass] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.error_id: UUID = uuid4()
        self.message: str = message
        self.severity: ErrorSeverity = severity
        self.context: dict[str, Any] = context or {}
        self.error_code: Optional[str] = error_code
        self.error_class: ErrorClass = error_class or self.default_error_class
        self.timestamp: datetime = datetime.utcnow()

        if cause:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        return self.error_class.should_retry

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/telemetry."""
        return {
            "error_id": str(self.error_id),
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.name,
            "error_code": self.error_code,
            "error_class": self.error_class.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.__cause__) if self.__cause__ else None,
        }

    def __str__(self) -> str:
        return self.message


# =============================================================================
# REQUEST & CALLER EXCEPTIONS
# =============================================================================


class InvalidInputError(ContentAutomationException):
    """
    Client-correctable request problem.

    Carries every violation found so the caller can fix them in one round trip.
    """

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str, *, errors: Optional[list[str]] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            context={"errors": errors or []},
            error_code="INVALID_ARGUMENT",
            **kwargs,
        )
        self.errors: list[str] = errors or []


class AuthenticationRequiredError(ContentAutomationException):
    """Caller identity is missing or invalid."""

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str = "Authentication required to generate content.", **kwargs):
        super().__init__(
            message, severity=ErrorSeverity.WARNING, error_code="UNAUTHENTICATED", **kwargs
        )


# =============================================================================
# PROVIDER EXCEPTIONS
# =============================================================================


class ProviderError(ContentAutomationException):
    """Base exception for generative provider failures."""

    def __init__(self, message: str, *, provider: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or {}
        context.setdefault("provider", provider)
        kwargs.setdefault("error_code", "PROVIDER_ERROR")
        super().__init__(message, context=context, **kwargs)
        self.provider = provider


class ProviderTransientError(ProviderError):
    """Timeouts, 5xx responses and network errors. Retried per policy."""

    default_error_class = ErrorClass.RETRYABLE


class ProviderTimeoutError(ProviderTransientError):
    """Provider request timed out."""

    def __init__(
        self,
        message: str = "Provider request timed out",
        *,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            context={"timeout_seconds": timeout_seconds},
            error_code="PROVIDER_TIMEOUT",
            **kwargs,
        )


class ProviderOverloadedError(ProviderError):
    """
    Provider signalled overload, rate limiting or unavailability.

    Never retried in place: the caller escalates to the next tier.
    """

    default_error_class = ErrorClass.FAST_FAIL

    def __init__(
        self,
        message: str = "Provider is overloaded",
        *,
        retry_after: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            context={"retry_after_seconds": retry_after},
            error_code="PROVIDER_OVERLOADED",
            **kwargs,
        )
        self.retry_after = retry_after


class ProviderAuthenticationError(ProviderError):
    """Provider rejected our credentials. Propagates from every tier."""

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str = "Provider authentication failed", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            error_code="PROVIDER_UNAUTHENTICATED",
            **kwargs,
        )


# =============================================================================
# OUTPUT EXCEPTIONS
# =============================================================================


class MalformedOutputError(ContentAutomationException):
    """
    Provider returned output that could not be turned into the expected shape.

    Retryable: regenerating often yields well-formed output.
    """

    default_error_class = ErrorClass.RETRYABLE

    def __init__(
        self,
        message: str = "Provider returned malformed output",
        *,
        response_text: Optional[str] = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            context={
                "response_preview": response_text[:500] if response_text else None,
                "expected_format": expected_format,
            },
            error_code="MALFORMED_OUTPUT",
            **kwargs,
        )


class ContentTooShortError(ContentAutomationException):
    """Generated text was absent or below the minimum length."""

    default_error_class = ErrorClass.RETRYABLE

    def __init__(
        self,
        message: str = "Generated content too short or empty",
        *,
        actual_length: Optional[int] = None,
        minimum_length: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            context={"actual_length": actual_length, "minimum_length": minimum_length},
            error_code="CONTENT_TOO_SHORT",
            **kwargs,
        )


# =============================================================================
# QUOTA & PERSISTENCE EXCEPTIONS
# =============================================================================


class EntityNotFoundError(ContentAutomationException):
    """Requested entity does not exist."""

    default_error_class = ErrorClass.FATAL

    def __init__(
        self,
        message: str,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            context={"entity_type": entity_type, "entity_id": str(entity_id)},
            error_code="ENTITY_NOT_FOUND",
            **kwargs,
        )


class QuotaExhaustedError(ContentAutomationException):
    """
    The authoritative settlement check found an insufficient balance.

    Raised inside the settlement transaction, so nothing is written.
    """

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str, *, decision: Any = None, **kwargs):
        super().__init__(
            message, severity=ErrorSeverity.WARNING, error_code="LIMIT_REACHED", **kwargs
        )
        self.decision = decision


class PersistenceError(ContentAutomationException):
    """Database write failed. Fatal to the request, never retried."""

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message, severity=ErrorSeverity.CRITICAL, error_code="PERSISTENCE_FAILED", **kwargs
        )


class DatabaseConnectionError(PersistenceError):
    """Failed to establish or use a database connection."""

    def __init__(
        self,
        message: str = "Database connection failed",
        *,
        host: Optional[str] = None,
        database: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, context={"host": host, "database": database}, **kwargs)
        self.error_code = "DB_CONNECTION_FAILED"


# =============================================================================
# PIPELINE EXCEPTIONS
# =============================================================================


class GenerationFailedError(ContentAutomationException):
    """Every degradation tier failed; surfaced to the caller as an internal error."""

    default_error_class = ErrorClass.FATAL

    def __init__(self, message: str, *, content_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            context={"content_id": content_id},
            error_code="GENERATION_FAILED",
            **kwargs,
        )
        self.content_id = content_id


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Base
    "ContentAutomationException",
    # Request
    "InvalidInputError",
    "AuthenticationRequiredError",
    # Provider
    "ProviderError",
    "ProviderTransientError",
    "ProviderTimeoutError",
    "ProviderOverloadedError",
    "ProviderAuthenticationError",
    # Output
    "MalformedOutputError",
    "ContentTooShortError",
    # Quota & persistence
    "EntityNotFoundError",
    "QuotaExhaustedError",
    "PersistenceError",
    "DatabaseConnectionError",
    # Pipeline
    "GenerationFailedError",
]
