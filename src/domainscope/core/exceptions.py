"""Custom exceptions for domainscope."""

from domainscope.models.errors import ClassifiedError, ErrorKind


class DomainscopeError(Exception):
    """Base exception for all domainscope errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AcquisitionError(DomainscopeError):
    """Raised when fetching a remote artifact fails at the infrastructure level."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        status: int | None = None,
        retry_after: float | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message or kind.value, details)
        self.kind = kind
        self.status = status
        self.retry_after = retry_after

    def to_classified(self) -> ClassifiedError:
        """Convert to the collaborator-facing error object."""
        return ClassifiedError(
            kind=self.kind,
            retry_after=self.retry_after,
            status=self.status,
        )


class SafeFetchError(AcquisitionError):
    """Raised by the host guard or the remote asset fetcher."""

    pass


class DnsResolutionError(AcquisitionError):
    """Raised when every DNS-over-HTTPS provider failed for a lookup."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(
            ErrorKind.DNS_ERROR,
            message,
            retry_after=retry_after,
            details=details,
        )


class RegistrationLookupError(DomainscopeError):
    """Raised when a WHOIS/RDAP lookup did not produce a record."""

    def __init__(
        self,
        reason: str,
        message: str | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message or reason, details)
        self.reason = reason


class ValidationError(DomainscopeError):
    """Raised when input validation fails."""

    pass


class AuthenticationError(DomainscopeError):
    """Raised when a downstream collaborator rejects our credentials."""

    pass


class QuotaExceededError(DomainscopeError):
    """Raised when a quota is exhausted and will not clear soon."""

    pass


class RateLimitError(DomainscopeError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after


class ConfigurationError(DomainscopeError):
    """Raised when configuration is invalid."""

    pass
