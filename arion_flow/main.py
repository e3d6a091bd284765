import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from arion_flow.config import Settings, settings
from arion_flow.database.supabase_client import SupabaseClients
from arion_flow.modules.runpod.client import RunPodClient
from arion_flow.modules.dashboard.board import WorkspaceBoard
from arion_flow.modules.dashboard.poller import DashboardPoller
from arion_flow.modules.orders.lifecycle import OrderLifecycleService
from arion_flow.modules.orders.service import OrderService
from arion_flow.modules.workspaces.probe import WorkspaceProbe
from arion_flow.modules.auth import routes as auth_routes
from arion_flow.modules.profiles import routes as profiles_routes
from arion_flow.modules.orders import routes as orders_routes
from arion_flow.modules.gpus import routes as gpus_routes
from arion_flow.modules.workspaces import routes as workspaces_routes
from arion_flow.modules.dashboard import routes as dashboard_routes
from arion_flow.modules.session import routes as session_routes
from arion_flow.modules.admin import routes as admin_routes
from arion_flow.modules.roles import routes as roles_routes
from arion_flow.modules.contact import routes as contact_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api"


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


def error_body(exc: StarletteHTTPException) -> dict:
    """JSON envelope for failed requests: {"ok": false, "error": ..., "code"?: ...}"""
    body = {"ok": False, "error": exc.detail}
    code = getattr(exc, "code", None)
    if code:
        body["code"] = code
    return body


def build_poller(app: FastAPI) -> DashboardPoller:
    app_settings: Settings = app.state.settings
    order_service = OrderService(app.state.supabase.admin)
    return DashboardPoller(
        board=app.state.board,
        order_service=order_service,
        lifecycle=OrderLifecycleService(order_service, app.state.runpod, app_settings.workspace_port),
        probe=app.state.probe,
        telemetry_interval=app_settings.telemetry_poll_interval_seconds,
        workspace_interval=app_settings.workspace_poll_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    app_settings: Settings = app.state.settings
    if getattr(app.state, "supabase", None) is None:
        app.state.supabase = SupabaseClients.from_settings(app_settings)
    if getattr(app.state, "runpod", None) is None:
        app.state.runpod = RunPodClient.from_settings(app_settings)
    if not app_settings.runpod_configured:
        logger.warning("RunPod credentials missing; provisioning endpoints will fail")

    poller = None
    if app_settings.dashboard_poller_enabled:
        poller = build_poller(app)
        poller.start()
    try:
        yield
    finally:
        if poller is not None:
            await poller.stop()
        app.state.runpod.close()
        app.state.probe.close()
        logger.info("Application shutdown")


def create_app(
    app_settings: Optional[Settings] = None,
    supabase_clients: Optional[SupabaseClients] = None,
    runpod: Optional[RunPodClient] = None,
) -> FastAPI:
    """Build the application. Clients not passed in are created in the lifespan."""
    app_settings = app_settings or settings

    limiter = Limiter(key_func=get_remote_address, default_limits=[app_settings.rate_limit])
    app = FastAPI(
        title=app_settings.app_name,
        debug=app_settings.debug,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.supabase = supabase_clients
    app.state.runpod = runpod
    app.state.board = WorkspaceBoard()
    app.state.probe = WorkspaceProbe(timeout=app_settings.workspace_probe_timeout_seconds)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        location = ".".join(str(part) for part in errors[0].get("loc", ())) if errors else ""
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": f"{location}: {message}" if location else message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if app_settings.is_production:
            return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include module routes
    app.include_router(auth_routes.router, prefix=API_PREFIX)
    app.include_router(profiles_routes.router, prefix=API_PREFIX)
    app.include_router(orders_routes.router, prefix=API_PREFIX)
    app.include_router(gpus_routes.router, prefix=API_PREFIX)
    app.include_router(workspaces_routes.router, prefix=API_PREFIX)
    app.include_router(dashboard_routes.router, prefix=API_PREFIX)
    app.include_router(session_routes.router, prefix=API_PREFIX)
    app.include_router(admin_routes.router, prefix=API_PREFIX)
    app.include_router(roles_routes.router, prefix=API_PREFIX)
    app.include_router(contact_routes.router, prefix=API_PREFIX)

    @app.get("/")
    async def root():
        return {"message": "Welcome to arion-flow", "status": "healthy"}

    @app.get("/health")
    @limiter.exempt
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    @limiter.exempt
    async def ready(request: Request):
        """Readiness probe: reports whether the provider credentials are configured."""
        return {"status": "ready", "runpod_configured": request.app.state.settings.runpod_configured}

    return app


app = create_app()
