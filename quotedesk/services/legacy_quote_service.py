"""
Legacy single-item vendor quotes.

Submitted directly from the public vendor form (no token), rate limited per
IP, then reviewed by admins. The per-IP count against vendor_quotes is the
authoritative limit; the in-process limiter only short-circuits repeat
offenders handled by this instance.
"""

import csv
import io
import math
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.config import settings
from quotedesk.errors import InvalidStatus, NotFound, RateLimited, ValidationError
from quotedesk.models.vendor_quote import LEGACY_QUOTE_STATUSES, LegacyVendorQuote
from quotedesk.schemas.common import clamp_limit, page_offset
from quotedesk.schemas.vendor_quote import LegacyQuoteCreate
from quotedesk.services.auth_service import AdminPrincipal, require_principal
from quotedesk.services.basket_service import get_basket_item
from quotedesk.services.rate_limiter import SubmissionRateLimiter

logger = structlog.get_logger()

CSV_HEADER = [
    "Item ID",
    "Vendor Name",
    "Vendor Email",
    "Vendor Phone",
    "Quoted Price",
    "Price with GST",
    "Remarks",
    "Status",
    "Submitted Date",
    "Admin Notes",
]


def _parse_id(quote_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(quote_id))
    except (ValueError, TypeError):
        return None


def _validate_status(status: Optional[str]) -> str:
    if not status or status not in LEGACY_QUOTE_STATUSES:
        raise InvalidStatus(
            f"Invalid status. Must be one of: {', '.join(LEGACY_QUOTE_STATUSES)}"
        )
    return status


def _trim(value: Optional[str], max_len: int) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value[:max_len] or None


def _money(value) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(value).quantize(Decimal("0.01")))


# ---------------------------------------------------------------------------
# Public submission
# ---------------------------------------------------------------------------


async def _check_ip_quota(
    session: AsyncSession, ip_address: str, now: datetime
) -> None:
    window = settings.LEGACY_QUOTE_RATE_WINDOW_SECONDS
    since = now - timedelta(seconds=window)
    recent = (
        await session.execute(
            select(func.count(LegacyVendorQuote.id)).where(
                LegacyVendorQuote.ip_address == ip_address,
                LegacyVendorQuote.submitted_at >= since,
            )
        )
    ).scalar() or 0

    if recent < settings.LEGACY_QUOTE_RATE_LIMIT:
        return

    oldest = (
        await session.execute(
            select(func.min(LegacyVendorQuote.submitted_at)).where(
                LegacyVendorQuote.ip_address == ip_address,
                LegacyVendorQuote.submitted_at >= since,
            )
        )
    ).scalar()
    retry_after = window
    if oldest is not None:
        retry_after = math.ceil((oldest + timedelta(seconds=window) - now).total_seconds())

    logger.warning(
        "legacy_quote_rate_limited",
        ip=ip_address,
        recent=recent,
        limit=settings.LEGACY_QUOTE_RATE_LIMIT,
        retry_after=retry_after,
    )
    raise RateLimited(
        retry_after,
        f"Rate limit exceeded. Maximum {settings.LEGACY_QUOTE_RATE_LIMIT} quotes per hour allowed.",
    )


async def submit_legacy_quote(
    session: AsyncSession,
    payload: LegacyQuoteCreate,
    ip_address: str,
    rate_limiter: Optional[SubmissionRateLimiter] = None,
    now: Optional[datetime] = None,
) -> LegacyVendorQuote:
    now = now or datetime.utcnow()
    ip_address = ip_address or "unknown"

    await _check_ip_quota(session, ip_address, now)
    if rate_limiter is not None and not rate_limiter.try_consume(ip_address):
        logger.warning("legacy_quote_rate_limited_local", ip=ip_address)
        raise RateLimited(rate_limiter.retry_after(ip_address))

    product_name = payload.product_name
    product_image = payload.product_image
    try:
        basket_item = await get_basket_item(session, payload.item_id)
        if basket_item is not None:
            product_name = basket_item.product_name or product_name
            product_image = basket_item.product_image or product_image
    except SQLAlchemyError as e:
        logger.warning(
            "basket_item_lookup_failed", item_id=payload.item_id, error=str(e)
        )

    quote = LegacyVendorQuote(
        item_id=payload.item_id.strip(),
        product_name=_trim(product_name, 200),
        product_image=_trim(product_image, 2000),
        vendor_name=payload.vendor_name.strip()[:100],
        vendor_email=str(payload.vendor_email).strip().lower(),
        vendor_phone=_trim(payload.vendor_phone, 30),
        quoted_price=Decimal(str(payload.quoted_price)).quantize(Decimal("0.01")),
        remarks=_trim(payload.remarks, 500),
        status="pending",
        source="vendor-portal",
        ip_address=ip_address,
        submitted_at=now,
    )
    session.add(quote)
    try:
        await session.flush()
    except SQLAlchemyError:
        if rate_limiter is not None:
            rate_limiter.release(ip_address)
        raise

    logger.info(
        "legacy_quote_submitted",
        quote_id=str(quote.id),
        item_id=quote.item_id,
        vendor_email=quote.vendor_email,
    )
    return quote


async def get_quotes_for_item(
    session: AsyncSession, item_id: str
) -> tuple[list[LegacyVendorQuote], dict]:
    """Non-rejected quotes for one item, cheapest first, plus summary stats."""
    if not item_id or not item_id.strip():
        raise ValidationError("Item ID is required")

    result = await session.execute(
        select(LegacyVendorQuote)
        .where(
            LegacyVendorQuote.item_id == item_id,
            LegacyVendorQuote.status != "rejected",
        )
        .order_by(LegacyVendorQuote.quoted_price.asc())
    )
    quotes = list(result.scalars().all())

    stats = {"count": len(quotes), "lowest_price": None, "average_price": None}
    if quotes:
        prices = [Decimal(q.quoted_price) for q in quotes]
        stats["lowest_price"] = _money(min(prices))
        stats["average_price"] = _money(sum(prices) / len(prices))
    return quotes, stats


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def _apply_filters(
    q,
    status: Optional[str] = None,
    item_id: Optional[str] = None,
    vendor_name: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    if status in LEGACY_QUOTE_STATUSES:
        q = q.where(LegacyVendorQuote.status == status)
    if item_id:
        q = q.where(LegacyVendorQuote.item_id == item_id)
    if vendor_name:
        q = q.where(LegacyVendorQuote.vendor_name.ilike(f"%{vendor_name}%"))
    if start_date:
        q = q.where(LegacyVendorQuote.submitted_at >= start_date)
    if end_date:
        q = q.where(LegacyVendorQuote.submitted_at <= end_date)
    return q


async def list_legacy_quotes(
    session: AsyncSession,
    status: Optional[str] = None,
    item_id: Optional[str] = None,
    vendor_name: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[LegacyVendorQuote], int, list[dict]]:
    limit = clamp_limit(limit)
    filters = dict(
        status=status,
        item_id=item_id,
        vendor_name=vendor_name,
        start_date=start_date,
        end_date=end_date,
    )

    total = (
        await session.execute(
            _apply_filters(select(func.count(LegacyVendorQuote.id)), **filters)
        )
    ).scalar() or 0

    result = await session.execute(
        _apply_filters(select(LegacyVendorQuote), **filters)
        .order_by(LegacyVendorQuote.submitted_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    quotes = list(result.scalars().all())

    stats_result = await session.execute(
        _apply_filters(
            select(
                LegacyVendorQuote.status,
                func.count(LegacyVendorQuote.id),
                func.avg(LegacyVendorQuote.quoted_price),
                func.min(LegacyVendorQuote.quoted_price),
                func.max(LegacyVendorQuote.quoted_price),
            ),
            **filters,
        ).group_by(LegacyVendorQuote.status)
    )
    statistics = [
        {
            "status": row[0],
            "count": row[1],
            "avg_price": _money(row[2]),
            "min_price": _money(row[3]),
            "max_price": _money(row[4]),
        }
        for row in stats_result.all()
    ]
    return quotes, total, statistics


async def get_legacy_quote(session: AsyncSession, quote_id: str) -> LegacyVendorQuote:
    parsed = _parse_id(quote_id)
    quote = await session.get(LegacyVendorQuote, parsed) if parsed else None
    if quote is None:
        raise NotFound("Quote not found")
    return quote


async def update_legacy_status(
    session: AsyncSession,
    quote_id: str,
    status: str,
    actor: Optional[AdminPrincipal],
    admin_notes: Optional[str] = None,
    rejection_reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LegacyVendorQuote:
    status = _validate_status(status)
    actor = require_principal(actor)
    quote = await get_legacy_quote(session, quote_id)

    previous = quote.status
    quote.status = status
    quote.last_modified_at = now or datetime.utcnow()
    quote.last_modified_by = actor.user_id
    if admin_notes and admin_notes.strip():
        quote.admin_notes = _trim(admin_notes, 1000)
    if status == "rejected" and rejection_reason and rejection_reason.strip():
        quote.rejection_reason = _trim(rejection_reason, 500)
    await session.flush()

    logger.info(
        "legacy_quote_status_updated",
        quote_id=str(quote.id),
        from_status=previous,
        to_status=status,
        by=actor.user_id,
    )
    return quote


async def add_admin_notes(
    session: AsyncSession,
    quote_id: str,
    admin_notes: str,
    actor: Optional[AdminPrincipal],
    now: Optional[datetime] = None,
) -> LegacyVendorQuote:
    if not admin_notes or not admin_notes.strip():
        raise ValidationError("Admin notes cannot be empty")
    actor = require_principal(actor)
    quote = await get_legacy_quote(session, quote_id)

    quote.admin_notes = _trim(admin_notes, 1000)
    quote.last_modified_at = now or datetime.utcnow()
    quote.last_modified_by = actor.user_id
    await session.flush()
    return quote


async def delete_legacy_quote(
    session: AsyncSession, quote_id: str, actor: Optional[AdminPrincipal]
) -> None:
    actor = require_principal(actor)
    parsed = _parse_id(quote_id)
    if parsed is None:
        raise NotFound("Quote not found")
    result = await session.execute(
        delete(LegacyVendorQuote).where(LegacyVendorQuote.id == parsed)
    )
    if result.rowcount == 0:
        raise NotFound("Quote not found")
    logger.info("legacy_quote_deleted", quote_id=quote_id, by=actor.user_id)


async def bulk_update_legacy_status(
    session: AsyncSession,
    quote_ids: Sequence[str],
    status: str,
    actor: Optional[AdminPrincipal],
    now: Optional[datetime] = None,
) -> int:
    if not quote_ids:
        raise ValidationError("Quote IDs array is required")
    status = _validate_status(status)
    actor = require_principal(actor)

    parsed = []
    for raw in quote_ids:
        qid = _parse_id(raw)
        if qid is None:
            raise ValidationError(f"Invalid quote ID format: {raw}")
        parsed.append(qid)

    result = await session.execute(
        update(LegacyVendorQuote)
        .where(LegacyVendorQuote.id.in_(parsed))
        .values(
            status=status,
            last_modified_at=now or datetime.utcnow(),
            last_modified_by=actor.user_id,
        )
        .execution_options(synchronize_session=False)
    )
    logger.info(
        "legacy_quote_bulk_status_updated",
        requested=len(parsed),
        updated=result.rowcount,
        status=status,
        by=actor.user_id,
    )
    return result.rowcount


async def legacy_statistics(
    session: AsyncSession,
    item_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    filters = dict(item_id=item_id, start_date=start_date, end_date=end_date)

    status_counts = [
        func.sum(case((LegacyVendorQuote.status == s, 1), else_=0)).label(s)
        for s in LEGACY_QUOTE_STATUSES
    ]
    overall_row = (
        await session.execute(
            _apply_filters(
                select(
                    func.count(LegacyVendorQuote.id).label("total"),
                    func.avg(LegacyVendorQuote.quoted_price).label("avg_price"),
                    func.min(LegacyVendorQuote.quoted_price).label("min_price"),
                    func.max(LegacyVendorQuote.quoted_price).label("max_price"),
                    *status_counts,
                ),
                **filters,
            )
        )
    ).one()

    overall = None
    if overall_row.total:
        overall = {
            "total": overall_row.total,
            "avg_price": _money(overall_row.avg_price),
            "min_price": _money(overall_row.min_price),
            "max_price": _money(overall_row.max_price),
        }
        for s in LEGACY_QUOTE_STATUSES:
            overall[s] = int(getattr(overall_row, s) or 0)

    quote_count = func.count(LegacyVendorQuote.id)
    top_result = await session.execute(
        _apply_filters(
            select(
                LegacyVendorQuote.vendor_name,
                quote_count.label("quote_count"),
                func.avg(LegacyVendorQuote.quoted_price).label("avg_price"),
                func.min(LegacyVendorQuote.quoted_price).label("min_price"),
            ),
            **filters,
        )
        .group_by(LegacyVendorQuote.vendor_name)
        .order_by(quote_count.desc())
        .limit(10)
    )
    top_vendors = [
        {
            "vendor_name": row.vendor_name,
            "quote_count": row.quote_count,
            "avg_price": _money(row.avg_price),
            "min_price": _money(row.min_price),
        }
        for row in top_result.all()
    ]
    return {"overall": overall, "top_vendors": top_vendors}


async def export_legacy_csv(
    session: AsyncSession,
    item_id: Optional[str] = None,
    status: Optional[str] = None,
) -> str:
    q = select(LegacyVendorQuote)
    if item_id:
        q = q.where(LegacyVendorQuote.item_id == item_id)
    if status:
        q = q.where(LegacyVendorQuote.status == status)
    result = await session.execute(
        q.order_by(LegacyVendorQuote.submitted_at.desc()).limit(10_000)
    )
    quotes = result.scalars().all()
    if not quotes:
        raise ValidationError("No quotes found to export")

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for quote in quotes:
        writer.writerow([
            quote.item_id,
            quote.vendor_name,
            quote.vendor_email,
            quote.vendor_phone or "N/A",
            f"{Decimal(quote.quoted_price):.2f}",
            f"{quote.price_with_gst:.2f}",
            quote.remarks or "",
            quote.status,
            quote.submitted_at.strftime("%Y-%m-%d") if quote.submitted_at else "",
            quote.admin_notes or "",
        ])
    return output.getvalue()
