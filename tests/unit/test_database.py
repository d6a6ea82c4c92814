"""
Unit tests for the connection URL helpers in quotedesk/database.py
"""

from sqlalchemy.engine import make_url

from quotedesk.config import settings
from quotedesk.database import async_engine_args, sync_database_url


def test_sslmode_moves_into_connect_args():
    url, connect_args = async_engine_args(
        "postgresql://app:pw@db.internal:5432/quotes?sslmode=require&application_name=qd"
    )

    parsed = make_url(url)
    assert parsed.drivername == "postgresql+asyncpg"
    assert parsed.password == "pw"
    assert "sslmode" not in parsed.query
    assert parsed.query["application_name"] == "qd"
    assert connect_args == {"ssl": "require"}


def test_plain_url_has_no_ssl_args():
    url, connect_args = async_engine_args("postgresql+asyncpg://app@localhost/quotes")
    assert url == "postgresql+asyncpg://app@localhost/quotes"
    assert connect_args == {}


def test_ssl_flag_forces_ssl_without_query():
    _, connect_args = async_engine_args("postgresql://app@localhost/quotes", ssl_required=True)
    assert connect_args == {"ssl": "require"}


def test_sync_url_prefers_explicit_setting(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_SYNC_URL", "postgresql://sync@host/db")
    assert sync_database_url() == "postgresql://sync@host/db"


def test_sync_url_derived_from_async_url(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_SYNC_URL", "")
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql+asyncpg://app:pw@host:5432/db")
    assert sync_database_url() == "postgresql+psycopg2://app:pw@host:5432/db"
