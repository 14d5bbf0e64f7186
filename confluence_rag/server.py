"""
FastAPI application entrypoint.

Creates the RAG service, starts its one-time initialization in the
background on startup, and registers the API routes and static files.
"""

import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from .api import INVALID_MESSAGE, router
from .config import config
from .pipeline import RAGService

logger = config.get_logger(__name__)


def start_initialization(service: RAGService) -> threading.Thread:
    """Run ``service.initialize`` on a daemon thread.

    Returns:
        The started thread, so callers may join it.
    """
    thread = threading.Thread(
        target=service.initialize,
        name="rag-initialization",
        daemon=True,
    )
    thread.start()
    return thread


def create_app(
    service: RAGService | None = None,
    *,
    initialize_on_startup: bool = True,
) -> FastAPI:
    """Build the FastAPI application around a RAG service.

    Args:
        service: Service to expose. A config-driven one is created if None.
        initialize_on_startup: Start initialization when the app starts.

    Returns:
        The configured application.
    """
    rag_service = service if service is not None else RAGService()

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        """
        Application lifespan handler.
        Kicks off initialization without blocking startup, so health checks
        answer while the corpus is still loading.
        """
        if initialize_on_startup:
            application.state.init_thread = start_initialization(rag_service)
        logger.info("Confluence RAG API started.")
        yield
        logger.info("Confluence RAG API shutting down.")

    app = FastAPI(
        title="Confluence RAG Chatbot API",
        description="Answers questions about a Confluence space with citations.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rag_service = rag_service
    app.state.init_thread = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Rejected malformed request to %s", request.url.path)
        return JSONResponse(status_code=400, content={"error": INVALID_MESSAGE})

    app.include_router(router)

    static_dir = config.STATIC_DIR
    if static_dir.is_dir():
        index_file = static_dir / "index.html"

        @app.get("/", include_in_schema=False)
        async def index() -> FileResponse:
            return FileResponse(index_file)

        app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app


app = create_app()
