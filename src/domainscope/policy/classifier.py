"""Retry policy for acquisition failures.

Collectors only raise typed errors; whether and when to try again is
decided here and nowhere else.
"""

import asyncio
from enum import Enum

import httpx

from domainscope.core.config import Settings, get_settings
from domainscope.core.exceptions import (
    AcquisitionError,
    AuthenticationError,
    DnsResolutionError,
    QuotaExceededError,
    RateLimitError,
    RegistrationLookupError,
    ValidationError,
)
from domainscope.models.base import BaseSchema
from domainscope.models.errors import ClassifiedError, ErrorKind


class Disposition(str, Enum):
    FATAL = "fatal"
    RETRYABLE = "retryable"


FATAL_KINDS = frozenset(
    {
        ErrorKind.UNSUPPORTED_TLD,
        ErrorKind.TLS_ERROR,
        ErrorKind.INVALID_URL,
        ErrorKind.PROTOCOL_NOT_ALLOWED,
        ErrorKind.HOST_NOT_ALLOWED,
        ErrorKind.HOST_BLOCKED,
        ErrorKind.PRIVATE_IP,
        ErrorKind.REDIRECT_LIMIT,
        ErrorKind.SIZE_EXCEEDED,
        # Guard DNS checks; acquisition lookups raise DnsResolutionError
        ErrorKind.DNS_ERROR,
    }
)

_TIMEOUT_HINTS = ("timeout", "timed out", "aborted")
_NETWORK_HINTS = ("network", "econnrefused", "econnreset", "socket hang up", "connection reset", "connection refused")


class Classification(BaseSchema):
    """Outcome handed to the step runtime."""

    disposition: Disposition
    kind: ErrorKind | None = None
    retry_after: float | None = None
    status: int | None = None
    reason: str

    @property
    def retryable(self) -> bool:
        return self.disposition == Disposition.RETRYABLE

    def to_error(self) -> ClassifiedError | None:
        """Collaborator-facing error object, when the failure has a kind."""
        if self.kind is None:
            return None
        return ClassifiedError(kind=self.kind, retry_after=self.retry_after, status=self.status)


def _fatal(reason: str, kind: ErrorKind | None = None, status: int | None = None) -> Classification:
    return Classification(disposition=Disposition.FATAL, kind=kind, status=status, reason=reason)


def _retry(
    reason: str,
    delay: float,
    kind: ErrorKind | None = None,
    status: int | None = None,
) -> Classification:
    return Classification(
        disposition=Disposition.RETRYABLE,
        kind=kind,
        retry_after=delay,
        status=status,
        reason=reason,
    )


def classify(
    error: BaseException,
    retry_after: float | None = None,
    settings: Settings | None = None,
) -> Classification:
    """Decide whether a failed step should run again.

    ``retry_after`` overrides the delay for retryable outcomes; otherwise
    the error's own delay or the configured default is used.
    """
    settings = settings or get_settings()

    def delay_for(own: float | None = None) -> float:
        if retry_after is not None:
            return retry_after
        return own if own is not None else settings.default_retry_after

    default_delay = delay_for()

    if isinstance(error, RateLimitError):
        return _retry("rate_limited", delay_for(error.retry_after))

    if isinstance(error, (ValidationError, AuthenticationError)):
        return _fatal(type(error).__name__)

    if isinstance(error, QuotaExceededError):
        return _fatal("quota_exhausted")

    if isinstance(error, RegistrationLookupError):
        if error.reason == "unsupported_tld":
            return _fatal("unsupported_tld", ErrorKind.UNSUPPORTED_TLD)
        kind = ErrorKind.TIMEOUT if error.reason == "timeout" else ErrorKind.FETCH_ERROR
        return _retry(f"registration_{error.reason}", default_delay, kind)

    if isinstance(error, DnsResolutionError):
        return _retry("dns_providers_unavailable", delay_for(error.retry_after), ErrorKind.DNS_ERROR)

    if isinstance(error, AcquisitionError):
        if error.kind in FATAL_KINDS:
            return _fatal(error.kind.value, error.kind, error.status)
        return _retry(error.kind.value, delay_for(error.retry_after), error.kind, error.status)

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return _retry("timeout", default_delay, ErrorKind.TIMEOUT)

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return _retry("network", default_delay, ErrorKind.FETCH_ERROR)

    message = str(error).lower()
    if any(hint in message for hint in _TIMEOUT_HINTS):
        return _retry("timeout", default_delay, ErrorKind.TIMEOUT)
    if any(hint in message for hint in _NETWORK_HINTS):
        return _retry("network", default_delay, ErrorKind.FETCH_ERROR)

    if settings.retry_unknown_errors:
        return _retry("unknown", default_delay)
    return _fatal("unknown")
