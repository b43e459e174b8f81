import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.api.router import api_router
from app.core.config import get_settings
from app.core.db import close_engine, get_session_factory, init_engine, initialize_database
from app.core.logging import configure_logging
from app.infra.db.customer_source import SqlCustomerSource
from app.infra.db.session_store import SqlSessionStore
from app.infra.realtime import InMemoryRealtimeHub, RealtimeEventSink
from app.services.message_generator import TemplateMessageGenerator
from app.services.scheduler_service import OutreachScheduler, utc_now

settings = get_settings()
settings.validate_security_settings()
configure_logging(settings.log_level, settings.log_json)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize infrastructure
    engine = init_engine()
    await initialize_database(engine)
    session_factory = get_session_factory()

    hub = InMemoryRealtimeHub()
    scheduler = OutreachScheduler(
        config=settings.scheduler_config(),
        customer_source=SqlCustomerSource(session_factory),
        store=SqlSessionStore(session_factory),
        generator=TemplateMessageGenerator(
            clock=utc_now, local_timezone=settings.local_timezone
        ),
        events=RealtimeEventSink(hub),
        local_timezone=settings.local_timezone,
    )
    app.state.db_engine = engine
    app.state.realtime_hub = hub
    app.state.outreach_scheduler = scheduler

    if settings.outreach_autostart:
        try:
            await scheduler.refresh()
        except SQLAlchemyError:
            logger.exception("Initial outreach queue refresh failed")
        scheduler.start()

    yield

    # Graceful shutdown
    await scheduler.shutdown()
    await close_engine(engine)


app = FastAPI(
    title="Retention Outreach Scheduler API",
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
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
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


@app.get("/", tags=["meta"])
async def root() -> dict[str, str]:
    return {"service": "retention-outreach-scheduler", "status": "ok"}
