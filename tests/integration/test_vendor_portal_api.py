"""
Route tests for the public vendor portal.

The database session is an AsyncMock (see conftest); service calls are
patched where the behaviour under test is the HTTP mapping.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from quotedesk.config import settings
from quotedesk.errors import AlreadySubmitted, Expired, RateLimited
from quotedesk.main import app
from quotedesk.models.quote_request import QuoteRequest, QuoteRequestItem
from quotedesk.models.vendor_quote import LegacyVendorQuote
from quotedesk.routes.vendor_portal import get_rate_limiter
from quotedesk.services.rate_limiter import SubmissionRateLimiter

PORTAL = "quotedesk.routes.vendor_portal"
BASKET_LOOKUP = "quotedesk.services.legacy_quote_service.get_basket_item"
NOW = datetime(2026, 3, 2, 10, 0, 0)


def _request(status="pending"):
    return QuoteRequest(
        id=uuid.uuid4(),
        order_id="ORD-42",
        vendor_name="Acme",
        status=status,
        token="tok",
        token_expires_at=NOW + timedelta(hours=1),
        created_at=NOW,
        updated_at=NOW,
        items=[
            QuoteRequestItem(product_id="p1", requested_qty=2, vendor_price=Decimal("12.50")),
            QuoteRequestItem(product_id="p2", variant_id="xl", requested_qty=1),
        ],
    )


def _legacy_quote():
    return LegacyVendorQuote(
        id=uuid.uuid4(),
        item_id="5f1c2b7e-0d6a-4c55-9a3e-2f4b8d9e1a77",
        vendor_name="Acme Supplies",
        vendor_email="quotes@acme.com",
        quoted_price=Decimal("100.00"),
        status="pending",
        source="vendor-portal",
        admin_notes="internal only",
        submitted_at=NOW,
    )


LEGACY_BODY = {
    "item_id": "5f1c2b7e-0d6a-4c55-9a3e-2f4b8d9e1a77",
    "vendor_name": "Acme Supplies",
    "vendor_email": "quotes@acme.com",
    "quoted_price": 100,
}


# ---------------------------------------------------------------------------
# Token-addressed quote requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_valid_token_returns_request_detail(client):
    with patch(f"{PORTAL}.get_request_by_token", AsyncMock(return_value=_request())):
        response = await client.get("/api/v1/vendor/quote-request/tok")

    assert response.status_code == 200
    body = response.json()
    assert body["order_id"] == "ORD-42"
    assert len(body["items"]) == 2
    assert body["total_amount"] == 25.0
    assert "token" not in body


@pytest.mark.asyncio
async def test_expired_token_is_gone_with_discriminator(client):
    with patch(f"{PORTAL}.get_request_by_token", AsyncMock(side_effect=Expired())):
        response = await client.get("/api/v1/vendor/quote-request/tok")

    assert response.status_code == 410
    body = response.json()
    assert body["status"] == "expired"
    assert body["error"]["code"] == "QUOTE_EXPIRED"


@pytest.mark.asyncio
async def test_unknown_token_is_404(client, mock_db):
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    mock_db.execute = AsyncMock(return_value=result)

    response = await client.get("/api/v1/vendor/quote-request/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_submit_returns_submitted_request(client):
    submitted = _request(status="submitted")
    submitted.submitted_at = NOW
    with patch(f"{PORTAL}.submit_quote", AsyncMock(return_value=submitted)) as svc:
        response = await client.post(
            "/api/v1/vendor/quote-request/tok/submit",
            json={"items": [{"product_id": "p1", "vendor_price": 12.5}]},
        )

    assert response.status_code == 200
    assert response.json()["request"]["status"] == "submitted"
    items = svc.await_args.args[2]
    assert items[0].product_id == "p1"


@pytest.mark.asyncio
async def test_resubmission_is_gone_with_submitted_status(client):
    with patch(f"{PORTAL}.submit_quote", AsyncMock(side_effect=AlreadySubmitted())):
        response = await client.post(
            "/api/v1/vendor/quote-request/tok/submit",
            json={"items": [{"product_id": "p1", "vendor_price": 1}]},
        )

    assert response.status_code == 410
    assert response.json()["status"] == "submitted"


@pytest.mark.asyncio
async def test_zero_price_is_a_400(client, mock_db):
    req = _request()
    req.token_expires_at = datetime.utcnow() + timedelta(hours=1)
    lookup = MagicMock()
    lookup.scalar_one_or_none.return_value = req
    mock_db.execute = AsyncMock(return_value=lookup)

    response = await client.post(
        "/api/v1/vendor/quote-request/tok/submit",
        json={"items": [{"product_id": "p1", "vendor_price": 0}]},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert req.status == "pending"


@pytest.mark.asyncio
async def test_price_beyond_column_range_is_a_400(client, mock_db):
    req = _request()
    req.token_expires_at = datetime.utcnow() + timedelta(hours=1)
    lookup = MagicMock()
    lookup.scalar_one_or_none.return_value = req
    mock_db.execute = AsyncMock(return_value=lookup)

    response = await client.post(
        "/api/v1/vendor/quote-request/tok/submit",
        json={"items": [{"product_id": "p1", "vendor_price": 1e12}]},
    )

    assert response.status_code == 400
    assert "must not exceed" in response.json()["error"]["message"]
    assert req.status == "pending"


# ---------------------------------------------------------------------------
# Legacy single-item form
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_legacy_submission_created_keyed_on_socket_peer(client):
    with patch(f"{PORTAL}.submit_legacy_quote", AsyncMock(return_value=_legacy_quote())) as svc:
        response = await client.post(
            "/api/v1/vendor/submit-quote",
            json=LEGACY_BODY,
            headers={"X-Forwarded-For": "203.0.113.7"},
        )

    assert response.status_code == 201
    assert response.json()["price_with_gst"] == 118.0
    assert svc.await_args.args[2] == "127.0.0.1"


@pytest.mark.asyncio
async def test_legacy_submission_behind_trusted_proxy_uses_forwarded_hop(client, monkeypatch):
    monkeypatch.setattr(settings, "TRUSTED_PROXIES", "127.0.0.1")
    with patch(f"{PORTAL}.submit_legacy_quote", AsyncMock(return_value=_legacy_quote())) as svc:
        await client.post(
            "/api/v1/vendor/submit-quote",
            json=LEGACY_BODY,
            headers={"X-Forwarded-For": "203.0.113.7"},
        )

    assert svc.await_args.args[2] == "203.0.113.7"


@pytest.mark.asyncio
async def test_rotating_forwarded_header_does_not_escape_hourly_quota(client, mock_db):
    stored = []

    def _add(row):
        row.id = uuid.uuid4()
        stored.append(row)

    async def _execute(stmt, *args, **kwargs):
        params = stmt.compile().params
        ip = next(v for k, v in params.items() if k.startswith("ip_address"))
        mine = [row for row in stored if row.ip_address == ip]
        result = MagicMock()
        if "min(" in str(stmt).lower():
            result.scalar.return_value = min(row.submitted_at for row in mine)
        else:
            result.scalar.return_value = len(mine)
        return result

    mock_db.add = MagicMock(side_effect=_add)
    mock_db.execute = AsyncMock(side_effect=_execute)
    limiter = SubmissionRateLimiter(limit=5, window_seconds=3600)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    codes = []
    with patch(BASKET_LOOKUP, AsyncMock(return_value=None)):
        for i in range(6):
            response = await client.post(
                "/api/v1/vendor/submit-quote",
                json=LEGACY_BODY,
                headers={"X-Forwarded-For": f"198.51.100.{i}"},
            )
            codes.append(response.status_code)

    assert codes == [201] * 5 + [429]
    assert len(stored) == 5
    assert {row.ip_address for row in stored} == {"127.0.0.1"}
    assert int(response.headers["Retry-After"]) > 0


@pytest.mark.asyncio
async def test_legacy_rate_limit_sets_retry_after(client):
    with patch(f"{PORTAL}.submit_legacy_quote", AsyncMock(side_effect=RateLimited(1800))):
        response = await client.post("/api/v1/vendor/submit-quote", json=LEGACY_BODY)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "1800"
    assert response.json()["retry_after"] == 1800


@pytest.mark.asyncio
async def test_legacy_body_validation_is_400(client):
    response = await client.post(
        "/api/v1/vendor/submit-quote",
        json={**LEGACY_BODY, "vendor_email": "not-an-email"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_limiter_dependency_is_overridable(client):
    limiter = MagicMock()
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    with patch(f"{PORTAL}.submit_legacy_quote", AsyncMock(return_value=_legacy_quote())) as svc:
        await client.post("/api/v1/vendor/submit-quote", json=LEGACY_BODY)

    assert svc.await_args.kwargs["rate_limiter"] is limiter


@pytest.mark.asyncio
async def test_item_quotes_hide_admin_fields(client):
    stats = {"count": 1, "lowest_price": 100.0, "average_price": 100.0}
    with patch(f"{PORTAL}.get_quotes_for_item", AsyncMock(return_value=([_legacy_quote()], stats))):
        response = await client.get("/api/v1/vendor/quotes/5f1c2b7e")

    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["lowest_price"] == 100.0
    assert body["quotes"][0]["admin_notes"] is None


@pytest.mark.asyncio
async def test_missing_product_is_404(client):
    with patch(f"{PORTAL}.get_basket_item", AsyncMock(return_value=None)):
        response = await client.get("/api/v1/vendor/product/nope")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_database_errors_hide_details_on_public_paths(client):
    with patch(f"{PORTAL}.get_quotes_for_item", AsyncMock(side_effect=SQLAlchemyError("secret dsn"))):
        response = await client.get("/api/v1/vendor/quotes/abcde")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "details" not in error
