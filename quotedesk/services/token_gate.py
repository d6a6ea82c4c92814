"""
Token access gate for vendor-facing quote requests.

Existence is separate from usability: ``resolve_token`` only fails when no
request carries the token, and reports expiry and prior submission as
distinct flags so callers can tell the vendor which one applies.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.errors import AlreadySubmitted, Expired, NotFound
from quotedesk.models.quote_request import QuoteRequest

logger = structlog.get_logger()


@dataclass
class TokenResolution:
    request: QuoteRequest
    is_expired: bool
    already_submitted: bool

    @property
    def is_valid(self) -> bool:
        return not self.already_submitted and not self.is_expired

    @property
    def denial_status(self) -> Optional[str]:
        if self.already_submitted:
            return "submitted"
        if self.is_expired:
            return "expired"
        return None


def evaluate(request: QuoteRequest, now: datetime) -> TokenResolution:
    expires_at = request.token_expires_at
    return TokenResolution(
        request=request,
        is_expired=expires_at is None or expires_at <= now,
        already_submitted=(
            request.status == "submitted" or request.submitted_at is not None
        ),
    )


async def resolve_token(
    session: AsyncSession,
    token: str,
    now: Optional[datetime] = None,
) -> TokenResolution:
    if not token:
        raise NotFound("Quote request not found")

    result = await session.execute(
        select(QuoteRequest).where(QuoteRequest.token == token)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Quote request not found")

    return evaluate(request, now or datetime.utcnow())


def ensure_usable(resolution: TokenResolution) -> QuoteRequest:
    """Raise the matching 410 error unless the token may still be used."""
    if resolution.already_submitted:
        raise AlreadySubmitted()
    if resolution.is_expired:
        raise Expired()
    return resolution.request


async def get_request_by_token(
    session: AsyncSession,
    token: str,
    now: Optional[datetime] = None,
) -> QuoteRequest:
    """Vendor read access: full detail only while the token is usable."""
    resolution = await resolve_token(session, token, now)
    if not resolution.is_valid:
        logger.info(
            "quote_request_token_denied",
            request_id=str(resolution.request.id),
            reason=resolution.denial_status,
        )
    return ensure_usable(resolution)
