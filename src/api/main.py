"""
Magna Porta API - FastAPI Application

Backend for the Magna Porta payments dashboard.
Provides:
- Companies, plans and pricing (currency rates, transfer markups)
- An authenticated proxy to the Airwallex API with SCA token caching
- Outbound mail over SMTP, SendGrid and Brevo
- Airwallex webhook ingestion and notification mails
"""

import logging
import structlog
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from src.airwallex import close_airwallex_client
from src.api.middleware import (
    IPFilterMiddleware,
    SecurityHeadersMiddleware,
    RequestIDMiddleware,
    RateLimitMiddleware,
    get_cors_origins,
)
from src.api.routes import (
    airwallex,
    companies,
    currency_groups,
    health,
    mail,
    plan_currency_rates,
    plan_types,
    plans,
    transfer_markup_rates,
    webhooks,
)
from src.config import get_settings
from src.db.client import init_db, close_db
from src.kernel.http.errors import register_exception_handlers
from src.webhooks.notifier import shutdown_webhook_mail_scheduler, start_webhook_mail_scheduler

API_VERSION = "1.0.0"

# Map log level string to logging constant
_LOG_LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _get_log_level() -> int:
    """Get numeric log level from settings."""
    level_str = get_settings().log_level.lower()
    return _LOG_LEVEL_MAP.get(level_str, logging.INFO)


# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if get_settings().log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()

    logger.info(
        "Starting Magna Porta API",
        version=API_VERSION,
        environment=settings.environment,
        mail_provider=settings.mail_provider,
    )

    await init_db()
    logger.info("PostgreSQL connection initialized")

    if settings.environment == "test":
        logger.info("Skipping webhook mail scheduler in test environment")
    else:
        start_webhook_mail_scheduler()

    yield

    logger.info("Shutting down Magna Porta API")
    shutdown_webhook_mail_scheduler()
    await close_airwallex_client()
    await close_db()


app = FastAPI(
    title="Magna Porta API",
    description="Companies, plans and pricing, Airwallex gateway, mail and webhook notifications",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_exception_handlers(app)

# Security middleware (order matters - first added = last executed)
settings = get_settings()

if settings.environment == "production":
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        burst_limit=settings.rate_limit_burst,
    )

app.add_middleware(IPFilterMiddleware)

# Request ID tracking
app.add_middleware(RequestIDMiddleware)

# Security headers
app.add_middleware(SecurityHeadersMiddleware)

# CORS middleware (must be after security headers)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Prometheus metrics endpoint
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(companies.router, prefix="/api/v1")
app.include_router(plan_types.router, prefix="/api/v1")
app.include_router(plans.router, prefix="/api/v1")
app.include_router(currency_groups.router, prefix="/api/v1")
app.include_router(plan_currency_rates.router, prefix="/api/v1")
app.include_router(transfer_markup_rates.router, prefix="/api/v1")
app.include_router(airwallex.router, prefix="/api/v1")
app.include_router(mail.router, prefix="/api/v1")
app.include_router(webhooks.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Magna Porta API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
