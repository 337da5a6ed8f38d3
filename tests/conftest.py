"""
Shared fixtures: an in-memory stand-in for `core.db.Database` and an app
built around it.
"""

from __future__ import annotations

import ipaddress
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from core.ratelimit import FixedWindowRateLimiter
from core.settings import Settings
from main import create_app


class FakeDatabase:
    """
    Answers the two statements the query log issues, keeping rows in a list.
    """

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.opened = False
        self.closed = False
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def init_pool(self) -> None:
        self.opened = True

    async def close_pool(self) -> None:
        self.closed = True

    def add(self, text: str, *, ip: str | None = None, meta: dict | None = None) -> dict[str, Any]:
        # Keep created_at strictly increasing even when the wall clock is coarse.
        now = max(datetime.now(timezone.utc), self._clock + timedelta(microseconds=1))
        self._clock = now
        row = {
            "id": len(self.rows) + 1,
            "text": text,
            "ip": ipaddress.ip_address(ip) if ip else None,
            "meta": json.dumps(meta or {}),
            "created_at": now,
        }
        self.rows.append(row)
        return row

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        if self.fail_with is not None:
            raise self.fail_with
        assert sql.strip().upper().startswith("INSERT INTO QUERY_LOGS")
        text, ip, meta_json = args
        row = self.add(text, ip=ip, meta=json.loads(meta_json))
        return {"id": row["id"], "created_at": row["created_at"]}

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        if self.fail_with is not None:
            raise self.fail_with
        assert sql.strip().upper().startswith("SELECT")
        (limit,) = args
        ordered = sorted(self.rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return [
            {k: r[k] for k in ("id", "text", "ip", "created_at")}
            for r in ordered[:limit]
        ]


@pytest.fixture
def static_dir(tmp_path):
    (tmp_path / "index.html").write_text("<html><body>query log</body></html>")
    (tmp_path / "styles.css").write_text("body { margin: 0; }")
    return tmp_path


@pytest.fixture
def settings(static_dir):
    return Settings(static_dir=static_dir)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def limiter():
    return FixedWindowRateLimiter(limit=60, window_seconds=60)


@pytest.fixture
def make_client(settings, fake_db, limiter):
    clients: list[TestClient] = []

    def _make(app_settings: Settings | None = None, *, database=None) -> TestClient:
        app = create_app(app_settings or settings, database=database or fake_db, limiter=limiter)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
