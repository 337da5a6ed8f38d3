"""
Query log request/response models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, StrictStr

MAX_TEXT_CHARS = 2000


class CreateQueryRequest(BaseModel):
    text: StrictStr = Field(..., min_length=1, max_length=MAX_TEXT_CHARS)
    # Opaque document; only checked to be a JSON object.
    meta: dict[str, Any] = Field(default_factory=dict)


class CreateQueryResponse(BaseModel):
    ok: bool = True
    id: int
    createdAt: datetime


class QueryLogItem(BaseModel):
    id: int
    text: str
    ip: str | None
    created_at: datetime


class ListQueriesResponse(BaseModel):
    ok: bool = True
    items: list[QueryLogItem]
