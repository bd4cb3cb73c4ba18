"""
FastAPI application entry point.

This is the main application that ties together all components:
- Upload endpoint for lab report extraction
- OCR adapter lifecycle (created at startup, closed at shutdown)
- CORS and gzip compression for the mobile client
- Error handling and logging
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from labocr import __version__
from labocr.api.routes import debug, extraction, health
from labocr.config import Settings, get_settings
from labocr.services.ocr import OCRAdapter, create_adapter
from labocr.services.pipeline import ExtractionPipeline

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    adapter: OCRAdapter | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (loaded from the environment if None)
        adapter: OCR adapter to use (built from settings at startup if None)

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = settings or get_settings()
    logging.getLogger("labocr").setLevel(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Builds one OCR adapter and pipeline at startup and closes the
        adapter on shutdown.
        """
        logger.info(f"Starting labocr v{__version__}")
        logger.info(f"OCR backend: {settings.ocr_backend}")
        logger.info(f"Debug mode: {settings.debug}")

        ocr = adapter or create_adapter(settings)
        app.state.pipeline = ExtractionPipeline.from_settings(settings, ocr)

        yield  # Application runs here

        logger.info("Shutting down labocr")
        app.state.pipeline = None
        ocr.close()

    app = FastAPI(
        title="labocr API",
        description=(
            "Lab report field extraction.\n\n"
            "Reads the report date and serum creatinine value from "
            "photographed lab reports."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.pipeline = None

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(extraction.router)

    # Debug router (only in debug mode)
    if settings.debug:
        app.include_router(debug.router, prefix="/api/v1")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if settings.debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": detail,
            },
        )

    return app


# Create the application instance
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "labocr.main:app",
        host="0.0.0.0",
        port=5000,
        reload=True,
    )
