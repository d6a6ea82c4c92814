"""
Quote request store: creation and admin listing of multi-item requests.

All functions use the caller's session (no commit). get_db() auto-commits.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.config import settings
from quotedesk.errors import DuplicateItemError, ValidationError
from quotedesk.models.quote_request import (
    QuoteRequest,
    QuoteRequestItem,
    make_item_key,
)
from quotedesk.schemas.common import clamp_limit, page_offset
from quotedesk.schemas.quote_request import QuoteRequestItemCreate

logger = structlog.get_logger()

# Admin listing only filters on these; anything else is ignored
LISTABLE_STATUSES = ("pending", "submitted")

TOKEN_BYTES = 32


@dataclass
class VendorInfo:
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None


def generate_access_token() -> str:
    """Unguessable vendor access token (256 bits from the OS CSPRNG)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def _clean(value, max_len: Optional[int] = None) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_len] if max_len else text


def validate_items(items: Sequence[QuoteRequestItemCreate]) -> None:
    """Raise before anything is written if the item set is unusable."""
    if not items:
        raise ValidationError("order_id and at least one item are required")

    seen: set[str] = set()
    for idx, item in enumerate(items):
        product_id = _clean(item.product_id)
        if not product_id:
            raise ValidationError(f"Item {idx} must include a product_id")
        if item.requested_qty is None or item.requested_qty <= 0:
            raise ValidationError(f"Item {idx} must have requested_qty > 0")
        key = make_item_key(product_id, _clean(item.variant_id))
        if key in seen:
            raise DuplicateItemError(
                f"Duplicate product/variant combination: {key}"
            )
        seen.add(key)


def request_total(request: QuoteRequest) -> Decimal:
    """Sum of vendor_price x requested_qty over the priced items."""
    total = Decimal("0")
    for item in request.items:
        if item.vendor_price is not None:
            total += Decimal(item.vendor_price) * (item.requested_qty or 1)
    return total


async def create_quote_request(
    session: AsyncSession,
    order_id: str,
    vendor: VendorInfo,
    items: Sequence[QuoteRequestItemCreate],
    token_expiry_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> QuoteRequest:
    order_id = _clean(order_id, 100)
    if not order_id:
        raise ValidationError("order_id and at least one item are required")
    validate_items(items)

    now = now or datetime.utcnow()
    expiry_minutes = token_expiry_minutes or settings.QUOTE_TOKEN_EXPIRY_MINUTES

    request = QuoteRequest(
        order_id=order_id,
        vendor_id=_clean(vendor.vendor_id, 100),
        vendor_name=_clean(vendor.vendor_name, 100),
        vendor_email=(_clean(vendor.vendor_email) or "").lower() or None,
        status="pending",
        token=generate_access_token(),
        token_expires_at=now + timedelta(minutes=expiry_minutes),
        created_at=now,
        updated_at=now,
        items=[
            QuoteRequestItem(
                position=idx,
                product_id=_clean(it.product_id, 100),
                variant_id=_clean(it.variant_id, 100),
                product_name=_clean(it.product_name, 200),
                variant_name=_clean(it.variant_name, 100),
                image=_clean(it.image),
                requested_qty=int(it.requested_qty),
                vendor_price=None,
                vendor_remark=None,
            )
            for idx, it in enumerate(items)
        ],
    )
    session.add(request)
    await session.flush()

    logger.info(
        "quote_request_created",
        request_id=str(request.id),
        order_id=order_id,
        item_count=len(request.items),
        expires_at=request.token_expires_at.isoformat(),
    )
    return request


async def list_quote_requests(
    session: AsyncSession,
    order_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[QuoteRequest], int]:
    limit = clamp_limit(limit)
    q = select(QuoteRequest)
    count_q = select(func.count(QuoteRequest.id))

    if order_id:
        q = q.where(QuoteRequest.order_id == order_id)
        count_q = count_q.where(QuoteRequest.order_id == order_id)
    if status in LISTABLE_STATUSES:
        q = q.where(QuoteRequest.status == status)
        count_q = count_q.where(QuoteRequest.status == status)

    total = (await session.execute(count_q)).scalar() or 0
    result = await session.execute(
        q.order_by(QuoteRequest.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return list(result.scalars().all()), total
