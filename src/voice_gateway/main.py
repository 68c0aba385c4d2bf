"""FastAPI application for the CallWaitingAI voice gateway.

Provides:
- Outbound calls through the voice provider, metered against a per-user quota
- Assistant management passthrough
- Call lifecycle webhooks with transcript lead extraction
- Website chat with sentiment-based lead qualification
- Public lead capture and landing page demo calls
- Telegram notifications and Stripe payment links for new leads

Every API route lives under /api/voice/v1; /health and / sit at the root.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from voice_gateway.assistants.routes import router as assistants_router
from voice_gateway.billing.routes import router as billing_router
from voice_gateway.calls.routes import router as calls_router
from voice_gateway.chat.routes import router as chat_router
from voice_gateway.config import VERSION, Settings, load_environment
from voice_gateway.demo.routes import router as demo_router
from voice_gateway.dependencies import Services
from voice_gateway.errors import GatewayError
from voice_gateway.leads.routes import router as leads_router
from voice_gateway.logs.routes import router as logs_router
from voice_gateway.middleware.request_logging import RequestLoggingMiddleware
from voice_gateway.middleware.security import SecurityHeadersMiddleware, add_cors
from voice_gateway.webhooks.routes import router as webhooks_router

logger = logging.getLogger("voice-gateway-api")

API_PREFIX = "/api/voice/v1"
SERVICE_NAME = "CallWaitingAI Voice API Gateway"


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    uptime: float
    environment: str
    version: str


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, start the rate-limit sweeper, and drain side effects on shutdown."""
    services: Services = app.state.services
    settings = services.settings

    await services.database.init_models()
    await services.demo_rate_limiter.start_sweep_task(settings.rate_limit_sweep_seconds)
    logger.info(f"{SERVICE_NAME} started ({settings.environment}, port {settings.port})")

    yield

    await services.demo_rate_limiter.stop_sweep_task()
    await services.dispatcher.drain()
    await services.aclose()
    logger.info(f"{SERVICE_NAME} stopped")


# =============================================================================
# Exception Handlers
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Bad Request",
                "message": f"{location}: {message}" if location else message,
                "details": jsonable_encoder(errors),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not Found",
                    "message": f"Route {request.method} {request.url.path} not found",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail), "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"[Server] Unhandled error on {request.method} {request.url.path}")
        settings: Settings = request.app.state.services.settings
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": exc.__class__.__name__ or "Internal Server Error",
                "message": (
                    "An unexpected error occurred" if settings.is_production else str(exc)
                ),
            },
        )


# =============================================================================
# App Factory
# =============================================================================


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use. Loaded from the environment if not provided.
        services: Prebuilt service container (tests pass fakes here). Built
            from ``settings`` if not provided.
    """
    if services is None:
        if settings is None:
            load_environment()
            settings = Settings.from_env()
        services = Services.from_settings(settings)
    settings = services.settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=SERVICE_NAME,
        description="Voice provider gateway with lead capture and qualification",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.started_at = time.monotonic()

    # Added innermost first: CORS wraps security headers, which wrap logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    add_cors(app, settings.allowed_origins)

    register_exception_handlers(app)

    for router in (
        calls_router,
        assistants_router,
        webhooks_router,
        billing_router,
        logs_router,
        leads_router,
        chat_router,
        demo_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime=round(time.monotonic() - request.app.state.started_at, 3),
            environment=settings.environment,
            version=VERSION,
        )

    @app.get("/")
    async def root():
        return {
            "message": SERVICE_NAME,
            "version": VERSION,
            "documentation": "https://docs.callwaitingai.dev/api",
            "endpoints": {
                "health": "/health",
                "call": f"POST {API_PREFIX}/call",
                "getCalls": f"GET {API_PREFIX}/calls",
                "getCall": f"GET {API_PREFIX}/call/:callId",
                "assistant": f"GET/POST/PATCH/DELETE {API_PREFIX}/assistant",
                "logs": f"GET {API_PREFIX}/logs",
                "webhook": f"POST {API_PREFIX}/webhook/vapi",
                "stripeWebhook": f"POST {API_PREFIX}/webhook/stripe",
                "leads": f"GET/POST {API_PREFIX}/leads",
                "chat": f"POST {API_PREFIX}/chat",
                "demoCall": f"POST {API_PREFIX}/demo-call",
            },
        }

    return app


def main() -> None:
    import uvicorn

    load_environment()
    settings = Settings.from_env()
    uvicorn.run(
        "voice_gateway.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
