"""
Query log API endpoints.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query, Request, status

from core import network
from core.db import Database, get_database

from . import schemas, service

router = APIRouter(prefix="/api")


@router.post("/queries", status_code=status.HTTP_201_CREATED, response_model=schemas.CreateQueryResponse)
async def create_query(
    request: Request,
    database: Database = Depends(get_database),
) -> schemas.CreateQueryResponse:
    """
    Store one submitted query. Invalid bodies answer 400 with field-level details.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise service.invalid_payload(["Request body must be valid JSON."]) from e

    payload = service.parse_create_request(body)
    ip = network.normalize_ip(
        network.client_address(request, trust_proxy=request.app.state.settings.trust_proxy)
    )
    return await service.create_query(database, payload, ip=ip)


@router.get("/queries", response_model=schemas.ListQueriesResponse)
async def list_queries(
    limit: str | None = Query(default=None),
    database: Database = Depends(get_database),
) -> schemas.ListQueriesResponse:
    return await service.list_queries(database, limit=service.clamp_limit(limit))


@router.get("/health")
def health() -> dict:
    return {"ok": True}
