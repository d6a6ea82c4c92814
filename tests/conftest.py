from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from quotedesk.main import app
from quotedesk.database import get_db
from quotedesk.services.auth_service import create_access_token


@pytest.fixture
def admin_token():
    return create_access_token(
        user_id="a0000000-0000-0000-0000-0000000000ad",
        role="admin",
        email="ops@quotedesk.test",
    )


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def mock_db():
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
async def client(mock_db):
    async def _override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
