from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from quotedesk.database import get_db
from quotedesk.middleware.auth import get_current_admin
from quotedesk.models.quote_request import QuoteRequest, QuoteRequestItem
from quotedesk.schemas.common import PaginatedResponse, build_pagination, clamp_limit
from quotedesk.schemas.quote_request import (
    QuoteRequestCreate,
    QuoteRequestCreated,
    QuoteRequestItemResponse,
    QuoteRequestResponse,
    QuoteRequestStatistics,
    QuoteRequestStatusUpdate,
)
from quotedesk.services.auth_service import AdminPrincipal
from quotedesk.services.quote_request_service import (
    VendorInfo,
    create_quote_request,
    list_quote_requests,
    request_total,
)
from quotedesk.services.reporting_service import (
    export_quote_requests_csv,
    quote_request_statistics,
    update_request_status,
)

logger = structlog.get_logger()
router = APIRouter()


def _item_to_response(item: QuoteRequestItem) -> QuoteRequestItemResponse:
    return QuoteRequestItemResponse(
        product_id=item.product_id,
        variant_id=item.variant_id,
        product_name=item.product_name,
        variant_name=item.variant_name,
        image=item.image,
        requested_qty=item.requested_qty,
        vendor_price=float(item.vendor_price) if item.vendor_price is not None else None,
        vendor_remark=item.vendor_remark,
    )


def request_to_response(req: QuoteRequest) -> QuoteRequestResponse:
    return QuoteRequestResponse(
        id=str(req.id),
        order_id=req.order_id,
        vendor_id=req.vendor_id,
        vendor_name=req.vendor_name,
        vendor_email=req.vendor_email,
        items=[_item_to_response(i) for i in req.items],
        status=req.status,
        token_expires_at=req.token_expires_at.isoformat() if req.token_expires_at else "",
        submitted_at=req.submitted_at.isoformat() if req.submitted_at else None,
        total_amount=float(request_total(req)),
        created_at=req.created_at.isoformat() if req.created_at else "",
        updated_at=req.updated_at.isoformat() if req.updated_at else None,
    )


@router.post("", response_model=QuoteRequestCreated, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: QuoteRequestCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    req = await create_quote_request(
        db,
        order_id=body.order_id,
        vendor=VendorInfo(
            vendor_id=body.vendor_id,
            vendor_name=body.vendor_name,
            vendor_email=str(body.vendor_email) if body.vendor_email else None,
        ),
        items=body.items,
        token_expiry_minutes=body.token_expiry_minutes,
    )
    logger.info("quote_request_issued", request_id=str(req.id), by=admin.user_id)
    return QuoteRequestCreated(request=request_to_response(req), token=req.token)


@router.get("", response_model=PaginatedResponse[QuoteRequestResponse])
async def list_requests(
    order_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    limit = clamp_limit(limit)
    requests, total = await list_quote_requests(
        db, order_id=order_id, status=status, page=page, limit=limit
    )
    return PaginatedResponse(
        data=[request_to_response(r) for r in requests],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/stats/summary", response_model=QuoteRequestStatistics)
async def request_stats(
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    return QuoteRequestStatistics(**await quote_request_statistics(db))


@router.get("/export/csv")
async def export_requests(
    order_id: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    csv_content = await export_quote_requests_csv(db, order_id=order_id, status=status)
    filename = f"quote_requests_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/{request_id}/status", response_model=QuoteRequestResponse)
async def change_request_status(
    request_id: str,
    body: QuoteRequestStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    req = await update_request_status(db, request_id, body.status, admin)
    return request_to_response(req)
