"""Tests for engine configuration and the shared column types."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.dialects import postgresql, sqlite

from pdr_kernel.db.base import UTCDateTime
from pdr_kernel.db.engine import database_url_from_env

ADELAIDE_WINTER = timezone(timedelta(hours=9, minutes=30))


class TestDatabaseUrlFromEnv:
    def test_pdr_variable_wins(self, monkeypatch):
        monkeypatch.setenv("PDR_DATABASE_URL", "postgresql+psycopg://pdr@db/pdr")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")

        assert database_url_from_env() == "postgresql+psycopg://pdr@db/pdr"

    def test_falls_back_to_default(self, monkeypatch):
        monkeypatch.delenv("PDR_DATABASE_URL", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)

        assert database_url_from_env() == "sqlite://"


class TestUTCDateTime:
    def test_naive_datetime_refused(self):
        with pytest.raises(ValueError, match="Naive datetime"):
            UTCDateTime().process_bind_param(datetime(2025, 6, 30, 23, 0), sqlite.dialect())

    def test_sqlite_stores_naive_utc_and_reloads_aware(self):
        local = datetime(2025, 6, 30, 23, 0, tzinfo=ADELAIDE_WINTER)
        column = UTCDateTime()

        stored = column.process_bind_param(local, sqlite.dialect())
        loaded = column.process_result_value(stored, sqlite.dialect())

        assert stored == datetime(2025, 6, 30, 13, 30)
        assert loaded == local
        assert loaded.tzinfo is timezone.utc

    def test_postgres_keeps_offset(self):
        local = datetime(2025, 7, 1, 8, 0, tzinfo=ADELAIDE_WINTER)

        stored = UTCDateTime().process_bind_param(local, postgresql.dialect())

        assert stored.tzinfo is timezone.utc
        assert stored == local
