"""TierBroker API — FastAPI application factory and process-wide wiring.

Invariants:
    - The store is opened in the lifespan startup and disposed on shutdown
    - Routers and error handlers are registered explicitly in create_app()
    - Only health probes are served over HTTP; the host application calls the
      services in-process

Design Decisions:
    - create_app(settings) factory: tests and embedding hosts build an app
      from explicit settings; the module-level `app` serves uvicorn
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tierbroker.api.error_handlers import register_error_handlers
from tierbroker.api.routes import health
from tierbroker.config import Settings, get_settings
from tierbroker.infrastructure.database import close_db, init_db
from tierbroker.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_format)
        init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        logger.info("TierBroker API started")
        yield
        await close_db()
        logger.info("TierBroker API stopped")

    app = FastAPI(title="TierBroker API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    register_error_handlers(app)
    return app


app = create_app()
