"""
Query log business logic: payload validation, limit handling, and mapping
storage failures to opaque API errors.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

import asyncpg
from pydantic import ValidationError

from core.db import Database

from . import repository, schemas

DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100

logger = logging.getLogger(__name__)

# Failures the store can raise for a single statement.
STORAGE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    asyncio.TimeoutError,
    OSError,
    RuntimeError,
)


class QueryLogError(Exception):
    """
    An error that maps directly onto an HTTP response body.
    """

    def __init__(self, status_code: int, error: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


def flatten_validation_error(exc: ValidationError) -> dict[str, Any]:
    """
    Group pydantic errors by top-level field.

    Errors that do not belong to a field (e.g. the body is not an object)
    go to `formErrors`.
    """
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        msg = str(err.get("msg", "Invalid value"))
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(msg)
        else:
            form_errors.append(msg)
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def invalid_payload(form_errors: list[str]) -> QueryLogError:
    return QueryLogError(400, "Invalid payload", {"formErrors": form_errors, "fieldErrors": {}})


def parse_create_request(body: Any) -> schemas.CreateQueryRequest:
    try:
        return schemas.CreateQueryRequest.model_validate(body)
    except ValidationError as e:
        raise QueryLogError(400, "Invalid payload", flatten_validation_error(e)) from e


def clamp_limit(raw: str | None) -> int:
    """
    Parse `limit` from the query string.

    Missing or non-numeric -> DEFAULT_LIMIT; otherwise truncated and clamped
    to [MIN_LIMIT, MAX_LIMIT].
    """
    if raw is None:
        return DEFAULT_LIMIT
    try:
        value = float(raw.strip())
    except ValueError:
        return DEFAULT_LIMIT
    if math.isnan(value):
        return DEFAULT_LIMIT
    return int(max(MIN_LIMIT, min(MAX_LIMIT, value)))


async def create_query(
    database: Database,
    payload: schemas.CreateQueryRequest,
    *,
    ip: str | None,
) -> schemas.CreateQueryResponse:
    try:
        row = await repository.insert_query(
            database,
            text=payload.text,
            ip=ip,
            meta=payload.meta,
        )
    except STORAGE_ERRORS as e:
        logger.exception("query_insert_failed ip=%s", ip)
        raise QueryLogError(500, "DB insert failed") from e

    return schemas.CreateQueryResponse(id=int(row["id"]), createdAt=row["created_at"])


async def list_queries(database: Database, *, limit: int) -> schemas.ListQueriesResponse:
    try:
        rows = await repository.list_recent_queries(database, limit=limit)
    except STORAGE_ERRORS as e:
        logger.exception("query_select_failed limit=%s", limit)
        raise QueryLogError(500, "DB select failed") from e

    return schemas.ListQueriesResponse(items=[schemas.QueryLogItem(**r) for r in rows])
