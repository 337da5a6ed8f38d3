"""
Query log persistence (raw SQL).

Schema (see db/schema.sql):
- query_logs(id bigserial, text, ip inet, meta jsonb, created_at timestamptz)
"""

from __future__ import annotations

import json
from typing import Any

from core.db import Database


def _json_arg(value: dict[str, Any] | None) -> str:
    """
    asyncpg does not automatically encode Python dicts for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    return json.dumps(value or {}, ensure_ascii=True)


async def insert_query(
    database: Database,
    *,
    text: str,
    ip: str | None,
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    row = await database.fetch_one(
        """
        INSERT INTO query_logs (text, ip, meta)
        VALUES ($1, $2::inet, $3::jsonb)
        RETURNING id, created_at
        """,
        text,
        ip,
        _json_arg(meta),
    )
    if row is None or "id" not in row:
        raise RuntimeError("Failed to insert query log.")
    return row


async def list_recent_queries(database: Database, *, limit: int) -> list[dict[str, Any]]:
    rows = await database.fetch_all(
        """
        SELECT id, text, ip, created_at
        FROM query_logs
        ORDER BY created_at DESC, id DESC
        LIMIT $1
        """,
        limit,
    )
    # asyncpg decodes inet into ipaddress objects.
    return [{**r, "ip": str(r["ip"]) if r.get("ip") is not None else None} for r in rows]
