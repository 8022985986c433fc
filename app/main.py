from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.api.router import api_router
from app.api.v1.routes import runtime_config
from app.core.config import get_settings
from app.core.db import close_engine, init_engine, initialize_database
from app.infra.realtime import DiagramEventHub

logger = structlog.get_logger()
settings = get_settings()
settings.validate_security_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize infrastructure
    engine = init_engine()
    app.state.db_engine = engine
    app.state.diagram_hub = DiagramEventHub()
    await initialize_database(engine)
    logger.info(
        "chartdb.starting",
        environment=settings.app_env,
        port=settings.api_port,
        heartbeat_seconds=settings.realtime_heartbeat_seconds,
    )

    yield

    # Graceful shutdown
    logger.info("chartdb.shutdown")
    await app.state.diagram_hub.close_all()
    await close_engine(engine)


app = FastAPI(
    title="ChartDB Diagram API",
    version="0.1.0",
    docs_url="/docs" if settings.app_env != "production" else None,
    redoc_url="/redoc" if settings.app_env != "production" else None,
    lifespan=lifespan,
)

if settings.trusted_hosts:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.trusted_hosts,
    )

if settings.force_https:
    app.add_middleware(HTTPSRedirectMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault(
        "Referrer-Policy",
        "strict-origin-when-cross-origin",
    )
    if settings.force_https:
        response.headers.setdefault(
            "Strict-Transport-Security",
            "max-age=31536000; includeSubDomains",
        )
    return response


app.include_router(api_router, prefix="/api")
app.include_router(runtime_config.router)

if settings.static_dir and Path(settings.static_dir).is_dir():
    static_dir = Path(settings.static_dir).resolve()

    # Single-page app: unknown paths fall back to index.html
    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_index(full_path: str) -> FileResponse:
        candidate = (static_dir / full_path).resolve()
        if full_path and candidate.is_file() and static_dir in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(static_dir / "index.html")
else:

    @app.get("/", tags=["meta"])
    async def root() -> dict[str, str]:
        return {"service": "chartdb-diagram-api", "status": "ok"}
