"""Infrastructure layer."""

from domainscope.infrastructure.cache import MemoryCache
from domainscope.infrastructure.coalesce import RequestCoalescer
from domainscope.infrastructure.http import HTTPClient, create_http_client
from domainscope.infrastructure.ratelimit import MultiRateLimiter, UpstreamLimiter

__all__ = [
    "HTTPClient",
    "MemoryCache",
    "MultiRateLimiter",
    "RequestCoalescer",
    "UpstreamLimiter",
    "create_http_client",
]
