"""
Quote submission engine.

A vendor submits prices once per token. The pending -> submitted flip is a
conditional UPDATE guarded on status, so when two submissions race on the
same token exactly one matches the row and the other sees AlreadySubmitted.
Item prices are written in the same transaction; the caller's session
commits or rolls back everything together.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.errors import AlreadySubmitted, Expired, ValidationError
from quotedesk.models.quote_request import MAX_PRICE, QuoteRequest, make_item_key
from quotedesk.schemas.quote_request import SubmittedItem
from quotedesk.services.token_gate import ensure_usable, resolve_token

logger = structlog.get_logger()

MAX_REMARK_LENGTH = 500


@dataclass
class PricedLine:
    price: Decimal
    remark: Optional[str]


def _parse_price(raw, idx: int) -> Decimal:
    if raw is None:
        raise ValidationError(f"Item {idx} must include vendor_price")
    try:
        as_float = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Item {idx}: vendor_price must be a number")
    if not math.isfinite(as_float) or as_float <= 0:
        raise ValidationError(f"Item {idx}: vendor_price must be greater than 0")
    too_large = f"Item {idx}: vendor_price must not exceed {MAX_PRICE}"
    if as_float > float(MAX_PRICE):
        raise ValidationError(too_large)
    try:
        price = Decimal(str(raw)).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationError(f"Item {idx}: vendor_price must be a number")
    if price > MAX_PRICE:
        raise ValidationError(too_large)
    return price


def build_price_map(items: Sequence[SubmittedItem]) -> dict[str, PricedLine]:
    """Validate the payload and key it by ``product_id::variant_id``."""
    if not items:
        raise ValidationError("Items array is required")

    price_map: dict[str, PricedLine] = {}
    for idx, it in enumerate(items):
        product_id = (it.product_id or "").strip()
        if not product_id:
            raise ValidationError(f"Item {idx} must include a product_id")
        price = _parse_price(it.vendor_price, idx)
        remark = (it.vendor_remark or "").strip()[:MAX_REMARK_LENGTH] or None
        variant_id = (it.variant_id or "").strip() or None
        price_map[make_item_key(product_id, variant_id)] = PricedLine(price, remark)
    return price_map


async def _claim_for_submission(
    session: AsyncSession, request: QuoteRequest, now: datetime
) -> bool:
    result = await session.execute(
        update(QuoteRequest)
        .where(
            QuoteRequest.id == request.id,
            QuoteRequest.status == "pending",
            QuoteRequest.submitted_at.is_(None),
            QuoteRequest.token_expires_at > now,
        )
        .values(status="submitted", submitted_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def submit_quote(
    session: AsyncSession,
    token: str,
    items: Sequence[SubmittedItem],
    now: Optional[datetime] = None,
) -> QuoteRequest:
    now = now or datetime.utcnow()

    # Gate first: a used or lapsed token is reported regardless of payload.
    resolution = await resolve_token(session, token, now)
    request = ensure_usable(resolution)

    price_map = build_price_map(items)

    if not await _claim_for_submission(session, request, now):
        if request.token_expires_at is None or request.token_expires_at <= now:
            raise Expired()
        logger.info("quote_submission_lost_race", request_id=str(request.id))
        raise AlreadySubmitted()

    priced = 0
    for item in request.items:
        line = price_map.get(item.item_key)
        if line is None:
            continue
        item.vendor_price = line.price
        item.vendor_remark = line.remark
        priced += 1

    # Mirror the claimed row on the loaded instance
    request.status = "submitted"
    request.submitted_at = now
    request.updated_at = now
    await session.flush()

    logger.info(
        "quote_submitted",
        request_id=str(request.id),
        order_id=request.order_id,
        priced_items=priced,
        requested_items=len(request.items),
        ignored_items=len(price_map) - priced,
    )
    return request
