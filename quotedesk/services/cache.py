from __future__ import annotations
# quotedesk/services/cache.py
import httpx
from quotedesk.config import settings

# Shared client so Redis calls reuse one TLS connection pool.
_http = httpx.AsyncClient(
    limits=httpx.Limits(max_connections=20, max_keepalive_connections=10, keepalive_expiry=30),
    timeout=httpx.Timeout(2.0),
)


class UpstashClient:
    """Minimal Upstash Redis REST client used by the global request limiter."""

    def __init__(self, url: str | None = None, token: str | None = None):
        self.url = (url if url is not None else settings.UPSTASH_REDIS_REST_URL).rstrip("/")
        token = token if token is not None else settings.UPSTASH_REDIS_REST_TOKEN
        self.headers = {"Authorization": f"Bearer {token}"}

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def pipeline(self, commands: list[list]) -> list:
        r = await _http.post(f"{self.url}/pipeline", headers=self.headers, json=commands)
        r.raise_for_status()
        return r.json()

    async def ping(self) -> bool:
        r = await _http.get(f"{self.url}/ping", headers=self.headers)
        return r.json().get("result") == "PONG"


cache = UpstashClient()
