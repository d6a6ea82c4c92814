"""
Route tests for the admin quote endpoints: auth, wiring and error mapping.
"""

import uuid
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from quotedesk.models.quote_request import QuoteRequest, QuoteRequestItem
from quotedesk.services.auth_service import create_access_token

REQUESTS_ROUTES = "quotedesk.routes.quote_requests"
LEGACY_SERVICE = "quotedesk.services.legacy_quote_service"
NOW = datetime(2026, 3, 2, 10, 0, 0)


def _request():
    return QuoteRequest(
        id=uuid.uuid4(),
        order_id="ORD-42",
        status="pending",
        token="t" * 43,
        token_expires_at=NOW + timedelta(hours=1),
        created_at=NOW,
        updated_at=NOW,
        items=[QuoteRequestItem(product_id="p1", requested_qty=2)],
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_admin_routes_require_a_bearer_token(client):
    response = await client.get("/api/v1/admin/vendor-quote-requests")
    assert response.status_code in (401, 403)
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_garbage_token_is_401(client):
    response = await client.get(
        "/api/v1/admin/vendor-quote-requests",
        headers={"Authorization": "Bearer not.a.jwt"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_non_admin_role_is_403(client):
    token = create_access_token(user_id="u-1", role="vendor")
    response = await client.get(
        "/api/v1/admin/vendor-quote-requests",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


# ---------------------------------------------------------------------------
# Quote requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_returns_request_and_token(client, auth_headers):
    req = _request()
    with patch(f"{REQUESTS_ROUTES}.create_quote_request", AsyncMock(return_value=req)) as svc:
        response = await client.post(
            "/api/v1/admin/vendor-quote-requests",
            json={
                "order_id": "ORD-42",
                "vendor_email": "sales@acme.com",
                "items": [{"product_id": "p1", "requested_qty": 2}],
            },
            headers=auth_headers,
        )

    assert response.status_code == 201
    body = response.json()
    assert body["token"] == req.token
    assert body["request"]["status"] == "pending"
    assert svc.await_args.kwargs["vendor"].vendor_email == "sales@acme.com"


@pytest.mark.asyncio
async def test_create_with_no_items_is_400(client, auth_headers, mock_db):
    response = await client.post(
        "/api/v1/admin/vendor-quote-requests",
        json={"order_id": "ORD-42", "items": []},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_with_duplicate_items_is_400(client, auth_headers):
    response = await client.post(
        "/api/v1/admin/vendor-quote-requests",
        json={
            "order_id": "ORD-42",
            "items": [
                {"product_id": "p1", "variant_id": "red", "requested_qty": 1},
                {"product_id": "p1", "variant_id": "red", "requested_qty": 3},
            ],
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DUPLICATE_ITEM"


@pytest.mark.asyncio
async def test_list_is_paginated(client, auth_headers):
    with patch(f"{REQUESTS_ROUTES}.list_quote_requests", AsyncMock(return_value=([_request()], 21))):
        response = await client.get(
            "/api/v1/admin/vendor-quote-requests?page=2&limit=10",
            headers=auth_headers,
        )

    assert response.status_code == 200
    pagination = response.json()["pagination"]
    assert pagination["total_pages"] == 3
    assert pagination["has_next"] is True
    assert pagination["has_prev"] is True


@pytest.mark.asyncio
async def test_page_size_is_capped(client, auth_headers):
    with patch(f"{REQUESTS_ROUTES}.list_quote_requests", AsyncMock(return_value=([], 0))) as svc:
        response = await client.get(
            "/api/v1/admin/vendor-quote-requests?limit=1000", headers=auth_headers
        )

    assert response.status_code == 200
    assert svc.await_args.kwargs["limit"] == 100


@pytest.mark.asyncio
async def test_invalid_request_status_is_400(client, auth_headers):
    response = await client.patch(
        f"/api/v1/admin/vendor-quote-requests/{uuid.uuid4()}/status",
        json={"status": "archived"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_request_stats_route_is_not_shadowed(client, auth_headers):
    stats = {
        "total": 3,
        "by_status": {"pending": 2, "submitted": 1},
        "submitted_total_amount": 40.0,
        "average_items_per_request": 1.67,
    }
    with patch(f"{REQUESTS_ROUTES}.quote_request_statistics", AsyncMock(return_value=stats)):
        response = await client.get(
            "/api/v1/admin/vendor-quote-requests/stats/summary", headers=auth_headers
        )

    assert response.status_code == 200
    assert response.json()["total"] == 3


# ---------------------------------------------------------------------------
# Grouped and normalised vendor quotes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_quote_detail_unknown_id_is_404(client, auth_headers, mock_db):
    response = await client.get("/api/v1/admin/vendor-quotes/not-a-uuid", headers=auth_headers)

    assert response.status_code == 404
    mock_db.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_grouped_quotes(client, auth_headers, mock_db):
    req = _request()
    result = MagicMock()
    result.scalars.return_value.all.return_value = [req]
    mock_db.execute = AsyncMock(return_value=result)

    response = await client.get("/api/v1/admin/vendor-quotes", headers=auth_headers)

    assert response.status_code == 200
    [order] = response.json()
    assert order["order_id"] == "ORD-42"
    assert order["products"][0]["vendor_quotes"][0]["request_id"] == str(req.id)


# ---------------------------------------------------------------------------
# Legacy quotes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_legacy_stats_route_is_not_shadowed(client, auth_headers):
    stats = {"overall": None, "top_vendors": []}
    with patch(f"{LEGACY_SERVICE}.legacy_statistics", AsyncMock(return_value=stats)) as svc:
        response = await client.get(
            "/api/v1/admin/legacy-quotes/stats/summary", headers=auth_headers
        )

    assert response.status_code == 200
    assert response.json() == {"overall": None, "top_vendors": []}
    svc.assert_awaited_once()


@pytest.mark.asyncio
async def test_legacy_export_is_csv_attachment(client, auth_headers):
    with patch(f"{LEGACY_SERVICE}.export_legacy_csv", AsyncMock(return_value="Item ID\r\n")):
        response = await client.get("/api/v1/admin/legacy-quotes/export/csv", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_bulk_status_reports_counts(client, auth_headers):
    ids = [str(uuid.uuid4()), str(uuid.uuid4())]
    with patch(f"{LEGACY_SERVICE}.bulk_update_legacy_status", AsyncMock(return_value=2)) as svc:
        response = await client.post(
            "/api/v1/admin/legacy-quotes/bulk/status",
            json={"quote_ids": ids, "status": "reviewed"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    assert response.json() == {"matched": 2, "modified": 2, "status": "reviewed"}
    assert svc.await_args.args[3].user_id == "a0000000-0000-0000-0000-0000000000ad"


@pytest.mark.asyncio
async def test_delete_legacy_quote(client, auth_headers):
    with patch(f"{LEGACY_SERVICE}.delete_legacy_quote", AsyncMock(return_value=None)):
        response = await client.delete(
            f"/api/v1/admin/legacy-quotes/{uuid.uuid4()}", headers=auth_headers
        )

    assert response.status_code == 204


@pytest.mark.asyncio
async def test_database_errors_carry_details_on_admin_paths(client, auth_headers):
    with patch(f"{LEGACY_SERVICE}.legacy_statistics", AsyncMock(side_effect=SQLAlchemyError("boom"))):
        response = await client.get(
            "/api/v1/admin/legacy-quotes/stats/summary", headers=auth_headers
        )

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "boom" in error["details"]


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_reports_database(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["db"] == "ok"
    assert "X-Request-ID" in response.headers
