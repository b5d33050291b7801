# PURPOSE: application factory. create_app() wires settings, the Database
# handle, routers, error handlers and middleware; `app` is the default
# instance for `uvicorn todo_manager.main:app`.

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from . import __version__
from .api.errors import register_exception_handlers
from .api.router import api_router
from .config import Settings, settings as default_settings
from .db import Database
from .logging_utils import log_event, setup_logging
from .rate_limit import limiter

logger = logging.getLogger(__name__)

tags_metadata = [
    {"name": "auth", "description": "Authentication: register, login, profile, password."},
    {"name": "tasks", "description": "Task management: CRUD, filters, statistics, bulk operations."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle: the store is opened once and closed once."""
    # --- Startup ---
    settings: Settings = app.state.settings
    database: Database = app.state.database
    setup_logging(settings.LOG_LEVEL)
    if settings.DB_AUTO_CREATE:
        database.create_schema()
    log_event(logger, "startup", version=__version__, database=database.engine.url.render_as_string())
    try:
        yield
    finally:
        # --- Shutdown ---
        database.dispose()
        log_event(logger, "shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="Task Manager API",
        version=__version__,
        description=(
            "JSON API for personal task lists under /api. "
            "Register or log in to obtain a Bearer token and access protected endpoints."
        ),
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = Database(settings.DATABASE_URL, echo=settings.DB_ECHO)

    # Rate limiting: decorators on auth routes; the flag is global to the limiter
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter

    app.include_router(api_router)
    register_exception_handlers(app)
    _add_operational_routes(app)
    _add_middleware(app, settings)

    if settings.METRICS_ENABLED:
        # Expose Prometheus metrics at /metrics
        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    return app


def _add_operational_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health():
        """Liveness: the process is up."""
        return {
            "success": True,
            "message": "Server is running",
            "data": {
                "status": "ok",
                "version": __version__,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }

    @app.get("/ready")
    def ready(request: Request):
        """Readiness: the store answers."""
        if request.app.state.database.ping():
            return {"success": True, "message": "ready", "data": {"status": "ready"}}
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "not ready", "errors": ["Database unavailable"]},
        )


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    # Request ID + access log middleware
    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        start = time.perf_counter()
        incoming = request.headers.get(settings.REQUEST_ID_HEADER)
        req_id = incoming or uuid.uuid4().hex
        request.state.request_id = req_id
        response = await call_next(request)
        response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
        duration_ms = int((time.perf_counter() - start) * 1000)
        logging.getLogger("todo_manager.request").info(
            "method=%s path=%s status=%s duration_ms=%s request_id=%s",
            request.method,
            request.url.path,
            getattr(response, "status_code", "-"),
            duration_ms,
            req_id,
        )
        return response

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        path = request.url.path
        # Swagger/ReDoc load CDN assets and inline scripts; leave their CSP alone
        if settings.SECURITY_CSP and not (path.startswith("/docs") or path.startswith("/redoc")):
            response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
        if settings.SECURITY_ENABLE_HSTS:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=15552000; includeSubDomains"
            )
        return response

    # --- CORS (outermost so preflight never hits the routes) ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-New-Token", settings.REQUEST_ID_HEADER],
    )


app = create_app()
