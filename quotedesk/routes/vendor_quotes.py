from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.database import get_db
from quotedesk.middleware.auth import get_current_admin
from quotedesk.models.vendor_quote import LegacyVendorQuote
from quotedesk.schemas.common import StatusUpdateResult, build_pagination, clamp_limit
from quotedesk.schemas.reporting import OrderQuotesResponse, QuoteDetailResponse
from quotedesk.schemas.vendor_quote import (
    LegacyQuoteBulkStatusUpdate,
    LegacyQuoteListResponse,
    LegacyQuoteNotesUpdate,
    LegacyQuoteResponse,
    LegacyQuoteStatistics,
    LegacyQuoteStatusUpdate,
    StatusPriceStats,
)
from quotedesk.services import legacy_quote_service
from quotedesk.services.auth_service import AdminPrincipal
from quotedesk.services.reporting_service import (
    get_quote_by_id,
    list_vendor_quotes_grouped_by_order,
)

# Grouped multi-item view and cross-schema lookup: /api/v1/admin/vendor-quotes
router = APIRouter()
# Legacy single-item quotes: /api/v1/admin/legacy-quotes
legacy_router = APIRouter()


def legacy_to_response(q: LegacyVendorQuote, include_admin: bool = True) -> LegacyQuoteResponse:
    return LegacyQuoteResponse(
        id=str(q.id),
        item_id=q.item_id,
        product_name=q.product_name,
        product_image=q.product_image,
        vendor_name=q.vendor_name,
        vendor_email=q.vendor_email,
        vendor_phone=q.vendor_phone,
        quoted_price=float(q.quoted_price),
        price_with_gst=float(q.price_with_gst),
        remarks=q.remarks,
        admin_notes=q.admin_notes if include_admin else None,
        rejection_reason=q.rejection_reason if include_admin else None,
        status=q.status,
        source=q.source,
        submitted_at=q.submitted_at.isoformat() if q.submitted_at else "",
        last_modified_at=(
            q.last_modified_at.isoformat() if include_admin and q.last_modified_at else None
        ),
        last_modified_by=q.last_modified_by if include_admin else None,
    )


@router.get("", response_model=list[OrderQuotesResponse])
async def list_grouped(
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    return await list_vendor_quotes_grouped_by_order(db)


@router.get("/{quote_id}", response_model=QuoteDetailResponse)
async def get_quote(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    return await get_quote_by_id(db, quote_id)


# --- Legacy quotes (static paths before /{quote_id}) ---


@legacy_router.get("", response_model=LegacyQuoteListResponse)
async def list_legacy(
    status: Optional[str] = None,
    item_id: Optional[str] = None,
    vendor_name: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    limit = clamp_limit(limit)
    quotes, total, statistics = await legacy_quote_service.list_legacy_quotes(
        db,
        status=status,
        item_id=item_id,
        vendor_name=vendor_name,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return LegacyQuoteListResponse(
        data=[legacy_to_response(q) for q in quotes],
        pagination=build_pagination(page, limit, total),
        statistics=[StatusPriceStats(**s) for s in statistics],
    )


@legacy_router.get("/stats/summary", response_model=LegacyQuoteStatistics)
async def legacy_stats(
    item_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    stats = await legacy_quote_service.legacy_statistics(
        db, item_id=item_id, start_date=start_date, end_date=end_date
    )
    return LegacyQuoteStatistics(**stats)


@legacy_router.get("/export/csv")
async def export_legacy(
    item_id: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    csv_content = await legacy_quote_service.export_legacy_csv(db, item_id=item_id, status=status)
    filename = f"vendor_quotes_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@legacy_router.post("/bulk/status", response_model=StatusUpdateResult)
async def bulk_status(
    body: LegacyQuoteBulkStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    updated = await legacy_quote_service.bulk_update_legacy_status(
        db, body.quote_ids, body.status, admin
    )
    return StatusUpdateResult(matched=updated, modified=updated, status=body.status)


@legacy_router.get("/{quote_id}", response_model=LegacyQuoteResponse)
async def get_legacy(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    return legacy_to_response(await legacy_quote_service.get_legacy_quote(db, quote_id))


@legacy_router.patch("/{quote_id}/status", response_model=LegacyQuoteResponse)
async def change_legacy_status(
    quote_id: str,
    body: LegacyQuoteStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    quote = await legacy_quote_service.update_legacy_status(
        db,
        quote_id,
        body.status,
        admin,
        admin_notes=body.admin_notes,
        rejection_reason=body.rejection_reason,
    )
    return legacy_to_response(quote)


@legacy_router.patch("/{quote_id}/notes", response_model=LegacyQuoteResponse)
async def update_notes(
    quote_id: str,
    body: LegacyQuoteNotesUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    quote = await legacy_quote_service.add_admin_notes(db, quote_id, body.admin_notes, admin)
    return legacy_to_response(quote)


@legacy_router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_legacy(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    await legacy_quote_service.delete_legacy_quote(db, quote_id, admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
