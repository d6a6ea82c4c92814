# quotedesk/routes/vendor_portal.py
"""
Public vendor endpoints. No login: token-addressed quote requests plus the
legacy single-item quote form.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.database import get_db
from quotedesk.errors import NotFound
from quotedesk.middleware.rate_limit import client_ip
from quotedesk.routes.quote_requests import request_to_response
from quotedesk.routes.vendor_quotes import legacy_to_response
from quotedesk.schemas.quote_request import QuoteRequestResponse, QuoteSubmission
from quotedesk.schemas.vendor_quote import (
    ItemQuoteStats,
    ItemQuotesResponse,
    LegacyQuoteCreate,
    LegacyQuoteResponse,
    ProductInfoResponse,
)
from quotedesk.services.basket_service import get_basket_item
from quotedesk.services.legacy_quote_service import get_quotes_for_item, submit_legacy_quote
from quotedesk.services.rate_limiter import SubmissionRateLimiter
from quotedesk.services.submission_service import submit_quote
from quotedesk.services.token_gate import get_request_by_token

router = APIRouter()


def get_rate_limiter(request: Request) -> SubmissionRateLimiter:
    return request.app.state.quote_rate_limiter


@router.get("/quote-request/{token}", response_model=QuoteRequestResponse)
async def get_quote_request(token: str, db: AsyncSession = Depends(get_db)):
    req = await get_request_by_token(db, token)
    return request_to_response(req)


@router.post("/quote-request/{token}/submit")
async def submit_quote_request(
    token: str,
    body: QuoteSubmission,
    db: AsyncSession = Depends(get_db),
):
    req = await submit_quote(db, token, body.items)
    return {
        "message": "Quote submitted successfully",
        "request": request_to_response(req).model_dump(),
    }


@router.post(
    "/submit-quote",
    response_model=LegacyQuoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_single_quote(
    body: LegacyQuoteCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    limiter: SubmissionRateLimiter = Depends(get_rate_limiter),
):
    quote = await submit_legacy_quote(db, body, client_ip(request), rate_limiter=limiter)
    return legacy_to_response(quote)


@router.get("/quotes/{item_id}", response_model=ItemQuotesResponse)
async def quotes_for_item(item_id: str, db: AsyncSession = Depends(get_db)):
    quotes, stats = await get_quotes_for_item(db, item_id)
    return ItemQuotesResponse(
        item_id=item_id,
        quotes=[legacy_to_response(q, include_admin=False) for q in quotes],
        stats=ItemQuoteStats(**stats),
    )


@router.get("/product/{item_id}", response_model=ProductInfoResponse)
async def product_info(item_id: str, db: AsyncSession = Depends(get_db)):
    item = await get_basket_item(db, item_id)
    if item is None:
        raise NotFound("Product not found")
    return ProductInfoResponse(
        id=str(item.id),
        product_name=item.product_name,
        product_image=item.product_image,
        variant_name=item.variant_name or "Standard",
        quantity=item.quantity,
        member_note=item.member_note or "",
        member_message=item.member_message or "",
        created_at=item.created_at.isoformat() if item.created_at else None,
    )
