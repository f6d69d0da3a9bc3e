import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings
from app.database import build_session_factory
from app.listener.auth import build_authenticator
from app.listener.router import router as listener_router
from app.notify.chat import Notifier, build_notifier
from app.notify.dispatcher import NotificationDispatcher
from app.rate_limit import configure_rate_limit, limiter, rate_limit_exceeded_handler
from app.transcode.guard import JobLocks
from shared.middleware.error_handler import error_envelope_middleware, http_exception_handler
from shared.middleware.request_id import RequestIdLogFilter, request_id_middleware

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    # Configure application logging so background task logs are visible
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s:%(name)s:%(request_id)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            handler.addFilter(RequestIdLogFilter())


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Docfliq Transcode Events Listener

Receives AWS MediaConvert job state changes (via an EventBridge API
destination) and reconciles them against platform state.

* **Validation**: malformed events and completed jobs without outputs are rejected (400).
* **Idempotency**: the first terminal status per job wins; redeliveries are acknowledged as `duplicate`.
* **Reconciliation**: processed video marked COMPLETE / FAILED; owning post published on completion.
* **Notifications**: best-effort chat alert, never delays or fails the response.

### Authentication
Configured with `LISTENER_AUTH_MODE`: `none`, `shared_secret` (`X-Webhook-Secret`)
or `hmac` (`X-Webhook-Signature`: HMAC-SHA256 of the raw body).

### Response shape
```json
{ "status": "ok", "result": "created" }
{ "status": "error", "reason": "MalformedPayload" }
```
"""

_TAGS_METADATA = [
    {
        "name": "listener",
        "description": "MediaConvert job state change webhook and processed video status.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let in-flight notifications finish (each is bounded by its own timeout)
    await app.state.dispatcher.drain()
    await app.state.session_factory.kw["bind"].dispose()
    logger.info("Transcode events listener stopped")


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Build the listener app. Collaborators are injected or built from settings."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Docfliq Transcode Events Listener",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        contact={
            "name": "Docfliq Engineering",
            "email": "engineering@docfliq.com",
        },
        license_info={
            "name": "Proprietary",
        },
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory or build_session_factory(
        settings.listener_database_url
    )
    app.state.job_locks = JobLocks()
    app.state.authenticator = build_authenticator(settings)
    app.state.dispatcher = NotificationDispatcher(
        notifier or build_notifier(
            settings.chat_webhook_url,
            timeout=settings.listener_notify_timeout_seconds,
        ),
        timeout=settings.listener_notify_timeout_seconds,
    )

    # Attach rate limiter state before middleware
    configure_rate_limit(settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Middleware (applied in reverse-registration order: last added = outermost)
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(error_envelope_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(listener_router)

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="transcode-events")

    return app


app = create_app()
