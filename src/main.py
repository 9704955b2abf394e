import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.core.exceptions.base import register_exception_handlers
from src.api.core.middleware.auth import auth_middleware
from src.api.core.middleware.logging import logging_middleware
from src.api.core.middleware.security import (
    SecurityHeadersMiddleware,
    PayloadSizeMiddleware,
)
from src.api.router import api_router
from src.database.connection import AsyncSessionLocal
from src.modules.execution.webhook_client import AiohttpWebhookClient
from src.redis.client import close_redis_pool
from src.utils.settings.app import AppSettings
from src.utils.settings.webhook import webhook_settings
from src.utils.logger import setup_logging


app_settings = AppSettings()
is_production = app_settings.is_production


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger = setup_logging(is_production, app_settings.DEBUG)
    logger.info("Starting Agent Marketplace API...")
    app_settings.validate_prod()

    app.state.session_factory = AsyncSessionLocal
    logger.info("Database session factory added to app state")

    app.state.webhook_client = AiohttpWebhookClient(
        timeout_seconds=webhook_settings.WEBHOOK_TIMEOUT_SECONDS,
        user_agent=webhook_settings.WEBHOOK_USER_AGENT,
    )

    yield

    # Shutdown
    logger.info("Shutting down Agent Marketplace API...")
    await app.state.webhook_client.close()
    await close_redis_pool()


app = FastAPI(
    title="Agent Marketplace API",
    description="Credit billing for pay-per-execution AI agents",
    version=app_settings.API_VERSION,
    lifespan=lifespan,
    # Docs are not served in production
    docs_url=None if is_production else "/docs",
    redoc_url=None if is_production else "/redoc",
    openapi_url=None if is_production else "/openapi.json",
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware, is_production=is_production)
app.add_middleware(
    PayloadSizeMiddleware,
    max_request_size=app_settings.MAX_REQUEST_SIZE,
)
app.middleware("http")(auth_middleware)
app.middleware("http")(logging_middleware)

app.include_router(api_router)


def run_dev_server():
    """Run development server with auto-reload."""
    uvicorn.run(
        "src.main:app",
        host=app_settings.HOST,
        port=app_settings.PORT,
        reload=True,
        access_log=False,
    )


def run_prod_server():
    """Run production server."""
    uvicorn.run(
        "src.main:app",
        host=app_settings.HOST,
        port=app_settings.PORT,
        reload=False,
        access_log=False,
    )
