"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.chat import router as chat_router
from src.api.dependencies import AppServices, build_services
from src.api.routes import documents_router, search_router, upload_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Builds the shared services on startup unless they were injected, and
    closes their network clients on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting Document Q&A API...")
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    yield
    # Shutdown
    logger.info("Shutting down Document Q&A API...")
    await app.state.services.aclose()


def create_app(services: AppServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built services. When omitted they are built from the
            environment during startup.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Document Q&A API",
        description=(
            "Retrieval-Augmented Generation API for document question answering. "
            "Ingests documents, generates embeddings, and streams grounded answers "
            "with web search fallback as Server-Sent Events."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.services = services

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.include_router(chat_router)
    application.include_router(upload_router)
    application.include_router(documents_router)
    application.include_router(search_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "document-qa"}

    return application


app = create_app()
