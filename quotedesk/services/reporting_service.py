"""
Admin reporting over both quote schemas.

Multi-item quote requests and legacy single-item quotes are never merged in
storage. ``get_quote_by_id`` wraps whichever one matched in a
``VendorQuoteView`` and ``normalize_quote_view`` turns either variant into
the same ``QuoteDetailResponse`` shape.
"""

import csv
import io
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.errors import InvalidStatus, NotFound
from quotedesk.models.quote_request import QUOTE_REQUEST_STATUSES, QuoteRequest
from quotedesk.models.vendor_quote import GST_RATE, LegacyVendorQuote
from quotedesk.schemas.reporting import (
    OrderProductQuotes,
    OrderQuotesResponse,
    QuoteDetailResponse,
    QuoteProductLine,
    VendorQuoteEntry,
)
from quotedesk.services.auth_service import AdminPrincipal, require_principal
from quotedesk.services.quote_request_service import request_total

logger = structlog.get_logger()


@dataclass
class SingleQuoteView:
    quote: LegacyVendorQuote


@dataclass
class MultiQuoteView:
    request: QuoteRequest


VendorQuoteView = Union[SingleQuoteView, MultiQuoteView]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _num(value) -> Optional[float]:
    return float(value) if value is not None else None


# ---------------------------------------------------------------------------
# Grouping by order
# ---------------------------------------------------------------------------


def group_requests_by_order(
    requests: Iterable[QuoteRequest],
) -> list[OrderQuotesResponse]:
    """
    Fold quote requests into one vendor-comparison entry per order.

    Inside an order, products are keyed by (product_id, variant_id) and
    collect one vendor quote per contributing request. The order shows the
    most recent created_at among its requests and takes its id from that
    request; on a tie the first request seen keeps it.
    """
    orders: dict[str, dict] = {}

    for req in requests:
        order = orders.get(req.order_id)
        if order is None:
            order = orders[req.order_id] = {
                "id": str(req.id),
                "created_at": req.created_at,
                "products": {},
            }
        elif req.created_at and (
            order["created_at"] is None or req.created_at > order["created_at"]
        ):
            order["id"] = str(req.id)
            order["created_at"] = req.created_at

        for item in req.items:
            key = (item.product_id, item.variant_id or "")
            product = order["products"].get(key)
            if product is None:
                product = order["products"][key] = OrderProductQuotes(
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    name=item.product_name,
                    variant_name=item.variant_name,
                    image=item.image,
                    quantity=item.requested_qty,
                )
            product.vendor_quotes.append(
                VendorQuoteEntry(
                    request_id=str(req.id),
                    vendor_id=req.vendor_id,
                    vendor_name=req.vendor_name,
                    vendor_email=req.vendor_email,
                    price=_num(item.vendor_price),
                    remark=item.vendor_remark,
                    status=req.status,
                    submitted_at=_iso(req.submitted_at),
                )
            )

    return [
        OrderQuotesResponse(
            id=order["id"],
            order_id=order_id,
            products=list(order["products"].values()),
            created_at=_iso(order["created_at"]) or "",
        )
        for order_id, order in orders.items()
    ]


async def list_vendor_quotes_grouped_by_order(
    session: AsyncSession,
) -> list[OrderQuotesResponse]:
    result = await session.execute(
        select(QuoteRequest).order_by(QuoteRequest.created_at.desc())
    )
    return group_requests_by_order(result.scalars().all())


# ---------------------------------------------------------------------------
# Single lookup across both schemas
# ---------------------------------------------------------------------------


async def find_quote_view(
    session: AsyncSession, quote_id: str
) -> Optional[VendorQuoteView]:
    try:
        parsed = uuid.UUID(str(quote_id))
    except (ValueError, TypeError):
        return None

    request = await session.get(QuoteRequest, parsed)
    if request is not None:
        return MultiQuoteView(request)

    quote = await session.get(LegacyVendorQuote, parsed)
    if quote is not None:
        return SingleQuoteView(quote)
    return None


def normalize_quote_view(view: VendorQuoteView) -> QuoteDetailResponse:
    if isinstance(view, MultiQuoteView):
        req = view.request
        products = []
        for item in req.items:
            total_price = None
            if item.vendor_price is not None:
                total_price = float(Decimal(item.vendor_price) * item.requested_qty)
            products.append(
                QuoteProductLine(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_image=item.image,
                    variant_name=item.variant_name,
                    quantity=item.requested_qty,
                    vendor_price=_num(item.vendor_price),
                    total_price=total_price,
                    vendor_remark=item.vendor_remark,
                )
            )
        return QuoteDetailResponse(
            id=str(req.id),
            quote_type="multi",
            order_id=req.order_id,
            vendor_id=req.vendor_id,
            vendor_name=req.vendor_name,
            vendor_email=req.vendor_email,
            status=req.status,
            products=products,
            total_amount=float(request_total(req)),
            submitted_at=_iso(req.submitted_at),
            created_at=_iso(req.created_at),
        )

    quote = view.quote
    price = Decimal(quote.quoted_price)
    return QuoteDetailResponse(
        id=str(quote.id),
        quote_type="single",
        vendor_name=quote.vendor_name,
        vendor_email=quote.vendor_email,
        vendor_phone=quote.vendor_phone,
        status=quote.status,
        products=[
            QuoteProductLine(
                product_id=quote.item_id,
                product_name=quote.product_name,
                product_image=quote.product_image,
                quantity=1,
                vendor_price=float(price),
                total_price=float(price),
                vendor_remark=quote.remarks,
            )
        ],
        total_amount=float(price),
        total_amount_with_gst=float(quote.price_with_gst),
        remarks=quote.remarks,
        admin_notes=quote.admin_notes,
        submitted_at=_iso(quote.submitted_at),
        created_at=_iso(quote.submitted_at),
    )


async def get_quote_by_id(session: AsyncSession, quote_id: str) -> QuoteDetailResponse:
    view = await find_quote_view(session, quote_id)
    if view is None:
        raise NotFound("Quote not found")
    return normalize_quote_view(view)


# ---------------------------------------------------------------------------
# Status transitions, statistics, export
# ---------------------------------------------------------------------------


async def update_request_status(
    session: AsyncSession,
    request_id: str,
    status: str,
    actor: Optional[AdminPrincipal],
    now: Optional[datetime] = None,
) -> QuoteRequest:
    # TODO: restrict to an explicit transition graph once product agrees on one
    if status not in QUOTE_REQUEST_STATUSES:
        raise InvalidStatus(
            f"Status must be one of: {', '.join(QUOTE_REQUEST_STATUSES)}"
        )
    actor = require_principal(actor)

    view = await find_quote_view(session, request_id)
    if not isinstance(view, MultiQuoteView):
        raise NotFound("Quote request not found")

    request = view.request
    previous = request.status
    request.status = status
    request.updated_at = now or datetime.utcnow()
    await session.flush()

    logger.info(
        "quote_request_status_updated",
        request_id=str(request.id),
        from_status=previous,
        to_status=status,
        by=actor.user_id,
    )
    return request


async def quote_request_statistics(session: AsyncSession) -> dict:
    counts_result = await session.execute(
        select(QuoteRequest.status, func.count(QuoteRequest.id)).group_by(
            QuoteRequest.status
        )
    )
    by_status = {s: 0 for s in QUOTE_REQUEST_STATUSES}
    for status, count in counts_result.all():
        by_status[status] = count
    total = sum(by_status.values())

    submitted_result = await session.execute(
        select(QuoteRequest).where(QuoteRequest.submitted_at.is_not(None))
    )
    submitted = submitted_result.scalars().all()
    submitted_total = sum((request_total(r) for r in submitted), Decimal("0"))

    item_total = (
        await session.execute(
            select(func.count()).select_from(QuoteRequest).join(QuoteRequest.items)
        )
    ).scalar() or 0

    return {
        "total": total,
        "by_status": by_status,
        "submitted_total_amount": float(submitted_total),
        "average_items_per_request": round(item_total / total, 2) if total else None,
    }


QUOTE_REQUEST_CSV_HEADER = [
    "Request ID",
    "Order ID",
    "Vendor Name",
    "Vendor Email",
    "Product ID",
    "Variant ID",
    "Product Name",
    "Requested Qty",
    "Vendor Price",
    "Line Total",
    "Price with GST",
    "Vendor Remark",
    "Status",
    "Submitted Date",
]


async def export_quote_requests_csv(
    session: AsyncSession,
    order_id: Optional[str] = None,
    status: Optional[str] = None,
) -> str:
    q = select(QuoteRequest)
    if order_id:
        q = q.where(QuoteRequest.order_id == order_id)
    if status:
        q = q.where(QuoteRequest.status == status)
    result = await session.execute(
        q.order_by(QuoteRequest.created_at.desc()).limit(10_000)
    )
    requests = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(QUOTE_REQUEST_CSV_HEADER)
    for req in requests:
        for item in req.items:
            price = Decimal(item.vendor_price) if item.vendor_price is not None else None
            line_total = price * item.requested_qty if price is not None else None
            writer.writerow([
                str(req.id),
                req.order_id,
                req.vendor_name or "",
                req.vendor_email or "",
                item.product_id,
                item.variant_id or "",
                item.product_name or "",
                item.requested_qty,
                f"{price:.2f}" if price is not None else "",
                f"{line_total:.2f}" if line_total is not None else "",
                f"{line_total * (1 + GST_RATE):.2f}" if line_total is not None else "",
                item.vendor_remark or "",
                req.status,
                req.submitted_at.strftime("%Y-%m-%d") if req.submitted_at else "",
            ])
    return output.getvalue()
