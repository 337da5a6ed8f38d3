from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from core import server
from core.db import Database
from core.log import configure_logging
from core.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from core.settings import Settings, load_settings
from queries import router as queries_router
from queries.service import QueryLogError

INDEX_DOCUMENT = "index.html"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Open the DB pool once per process.
    await app.state.db.init_pool()
    try:
        yield
    finally:
        await app.state.db.close_pool()


def _add_cors(app: FastAPI, origins: list[str]) -> None:
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        return
    # Empty allow-list: reflect any origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database or Database(
        settings.database_url,
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        command_timeout=settings.db_command_timeout,
    )
    app.state.limiter = limiter or FixedWindowRateLimiter(
        limit=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # Starlette runs the last-added middleware first: CORS wraps the limiter
    # so that 429 responses still carry CORS headers.
    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.limiter,
        path_prefix="/api/",
        trust_proxy=settings.trust_proxy,
    )
    _add_cors(app, settings.cors_origins)

    @app.exception_handler(QueryLogError)
    async def query_log_error_handler(_: Request, exc: QueryLogError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(queries_router.router, tags=["queries"])

    static_dir = settings.static_dir

    @app.get("/", include_in_schema=False)
    def root() -> FileResponse:
        index = static_dir / INDEX_DOCUMENT
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(index)

    # Mounted last so API routes take precedence.
    app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app


def main() -> None:
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)

    app = create_app(settings)
    try:
        server.run(
            app,
            host=settings.host,
            port=settings.port,
            max_attempts=settings.port_max_attempts,
            log_level=settings.log_level,
        )
    except server.PortBindError:
        logger.exception("Server error")
        sys.exit(1)


if __name__ == "__main__":
    main()
