# quotedesk/middleware/rate_limit.py
"""
Coarse per-client request limiting via Upstash Redis.

Admin traffic gets a higher ceiling than the public vendor portal. This sits
in front of every route and fails open; the legacy quote form's own
per-IP submission quota is enforced separately in the quote service.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from jose import JWTError
import structlog

from quotedesk.config import settings
from quotedesk.services.auth_service import verify_access_token
from quotedesk.services.cache import cache

logger = structlog.get_logger()

# path category -> {limit, window_seconds}
_LIMITS = {
    "admin": {"limit": 300, "window": 60},
    "vendor": {"limit": 60, "window": 60},
}

SKIP_PATHS = {"/health"}


def client_ip(request: Request) -> str:
    """
    Caller address for per-IP limits.

    X-Forwarded-For is only read when the socket peer is a configured trusted
    proxy, and then the rightmost hop that is not itself a trusted proxy wins.
    Anything a client writes to the left of that hop is ignored.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = settings.trusted_proxies_set
    if peer not in trusted:
        return peer
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return peer


def _identity(request: Request) -> tuple[str, str]:
    """
    Return (category, identity) for the limiter key.

    Verified admins are keyed by user id so a shared office IP does not
    throttle the whole team; everyone else is keyed by IP.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            payload = verify_access_token(auth_header.split(" ", 1)[1])
        except JWTError:
            payload = None
        if payload and payload.get("role") in settings.admin_roles_set:
            return "admin", str(payload["sub"])
    return "vendor", client_ip(request)


async def rate_limit_middleware(request: Request, call_next):
    path = request.url.path
    if path in SKIP_PATHS or not cache.enabled:
        return await call_next(request)

    category, identity = _identity(request)
    config = _LIMITS[category]
    limit = config["limit"]
    window = config["window"]
    key = f"rl:{category}:{identity}:{path}"

    try:
        results = await cache.pipeline([
            ["INCR", key],
            ["EXPIRE", key, window],
        ])
        current = results[0].get("result", 0) if isinstance(results[0], dict) else 0
    except Exception as e:
        logger.warning("rate_limit_cache_error", error=str(e))
        return await call_next(request)

    if current > limit:
        logger.warning(
            "rate_limited",
            identity=identity,
            path=path,
            category=category,
            current=current,
            limit=limit,
        )
        return JSONResponse(
            status_code=429,
            content={"error": {"code": "RATE_LIMITED", "message": "Too many requests"}},
            headers={"Retry-After": str(window)},
        )

    return await call_next(request)
