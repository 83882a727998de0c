"""Request budgets for shared upstreams (DoH providers, WHOIS servers)."""

from aiolimiter import AsyncLimiter

from domainscope.core.config import Settings, get_settings


class UpstreamLimiter:
    """Token buckets for one upstream family, one bucket per host.

    A throttled DoH provider or WHOIS server does not spend the budget of
    the next one in line.
    """

    def __init__(self, rate: float, time_period: float = 1.0) -> None:
        self.rate = rate
        self.time_period = time_period
        self._buckets: dict[str, AsyncLimiter] = {}

    def bucket(self, host: str = "") -> AsyncLimiter:
        limiter = self._buckets.get(host)
        if limiter is None:
            limiter = AsyncLimiter(self.rate, self.time_period)
            self._buckets[host] = limiter
        return limiter

    async def acquire(self, host: str = "") -> None:
        await self.bucket(host).acquire()


class MultiRateLimiter:
    """Named limiters, one per upstream family."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()

        self._limiters = {
            "doh": UpstreamLimiter(settings.doh_queries_per_second),
            "whois": UpstreamLimiter(settings.whois_queries_per_minute, 60.0),
        }

    def get(self, name: str) -> UpstreamLimiter | None:
        """Get rate limiter by name."""
        return self._limiters.get(name)

    async def acquire(self, name: str, host: str = "") -> None:
        """Wait for a token. Unknown names are not limited."""
        limiter = self._limiters.get(name)
        if limiter:
            await limiter.acquire(host)
