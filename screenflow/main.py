"""
Screenflow Service.

HTTP backend for the flow navigation and branching engine.

API Endpoints:
- Flows: create, list, get, delete, clone, stats
- Branches: query, create, update, delete, merge
- Navigation: graph, validation, path lookup, navigation paths
- Screens: ordered listing, insert, remove, reorder
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import router as api_router
from .config import Settings, get_settings
from .engine import FlowGraphEngine
from .errors import ContentValidationError, FlowGraphError
from .log import configure_logging
from .sequence import ContentValidator
from .store import ScreenStore, create_store

logger = structlog.get_logger(__name__)

START_TIME = time.time()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ScreenStore] = None,
    content_validator: Optional[ContentValidator] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use instead of the environment
        store: Screen store to use instead of the configured backend
        content_validator: Screen DSL validator for insertions

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    store = store or create_store(settings)
    engine = FlowGraphEngine(store, settings, content_validator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            "starting_screenflow",
            port=settings.port,
            env=settings.environment,
            backend=settings.storage.backend,
        )
        await store.initialize()

        yield

        logger.info("shutting_down_screenflow")
        await store.close()

    app = FastAPI(
        title="Screenflow Service",
        description="Flow navigation and branching graph engine",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FlowGraphError)
    async def flow_graph_error_handler(request: Request, exc: FlowGraphError):
        """Map engine errors to their HTTP status."""
        content = {"error": exc.message, "code": exc.code}
        if isinstance(exc, ContentValidationError):
            content["validationErrors"] = exc.validation_errors

        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                error=exc.message,
                code=exc.code,
                path=request.url.path,
                method=request.method,
            )
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed requests as 400."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Invalid request",
                "details": [
                    {
                        "loc": [str(part) for part in err.get("loc", ())],
                        "msg": err.get("msg", ""),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": __version__,
            "uptime_seconds": time.time() - START_TIME,
        }

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


def run() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "screenflow.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
