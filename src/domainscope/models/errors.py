"""Error taxonomy shared by every acquisition component."""

from enum import Enum

from domainscope.models.base import BaseSchema


class ErrorKind(str, Enum):
    """Kinds of acquisition failure."""

    INVALID_URL = "invalid_url"
    PROTOCOL_NOT_ALLOWED = "protocol_not_allowed"
    HOST_NOT_ALLOWED = "host_not_allowed"
    HOST_BLOCKED = "host_blocked"
    DNS_ERROR = "dns_error"
    PRIVATE_IP = "private_ip"
    REDIRECT_LIMIT = "redirect_limit"
    INVALID_RESPONSE = "invalid_response"
    SIZE_EXCEEDED = "size_exceeded"
    TIMEOUT = "timeout"
    TLS_ERROR = "tls_error"
    FETCH_ERROR = "fetch_error"
    UNSUPPORTED_TLD = "unsupported_tld"


class ClassifiedError(BaseSchema):
    """Error object handed to collaborators. Never persisted."""

    kind: ErrorKind
    retry_after: float | None = None
    status: int | None = None
