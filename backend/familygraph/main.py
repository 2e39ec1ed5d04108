"""Content Family Graph API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ContentGraphError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and graph runtime (locks, suggestion cache, classifier) initialized
      on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py: main.py only assembles the app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from familygraph.api.dependencies import init_graph_runtime
from familygraph.api.error_handlers import register_error_handlers
from familygraph.api.routes import families, health, relationships, suggestions
from familygraph.config import get_settings
from familygraph.infrastructure.database import init_db
from familygraph.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_graph_runtime(settings, enable_ai=settings.suggestion_ai_enabled)
    logger.info("Content Family Graph API started")
    yield
    logger.info("Content Family Graph API shutting down")


app = FastAPI(
    title="Content Family Graph API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(relationships.router)
app.include_router(families.router)
app.include_router(suggestions.router)

register_error_handlers(app)
