"""
FastAPI Application

Entry point for the production metrics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from aquametrics.config import get_settings
from aquametrics.config.logging import configure_logging
from aquametrics.database.connection import close_database, init_database
from aquametrics.serving.api.middleware import RequestLoggingMiddleware
from aquametrics.serving.api.routes import dashboard_router, health_router
from aquametrics.sources import create_row_source

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging()

    logger.info("Starting production metrics API", backend=settings.row_source.backend)

    engine = None
    if settings.row_source.backend == "sql":
        try:
            engine = await init_database()
        except Exception as e:
            logger.warning("Database init failed", error=str(e))

    if engine is not None or settings.row_source.backend == "rest":
        app.state.row_source = create_row_source(settings, engine=engine)

    yield

    logger.info("Shutting down")
    source = getattr(app.state, "row_source", None)
    if source is not None:
        await source.close()
    await close_database()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Aquaculture Production Metrics API",
        description="Production KPIs, trends and water quality for aquaculture systems",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "row_source": settings.row_source.backend,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=get_settings().api_host, port=get_settings().api_port)
