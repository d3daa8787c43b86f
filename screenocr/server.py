"""
FastAPI server exposing capture and OCR to a local UI shell.
"""

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .capture import (
    CaptureOrchestrator,
    capture_with_stats_after_hide,
    get_default_orchestrator,
)
from .codec import png_bytes_to_base64
from .config import DEFAULT_HOST, DEFAULT_PORT, HIDE_DELAY_SECONDS
from .errors import (
    CaptureError,
    EngineNotInstalledError,
    ImageDecodeError,
    MissingLanguageDataError,
    ScreenOcrError,
)
from .ocr import tesseract_available
from .pipeline import OcrPipeline


class CaptureRequest(BaseModel):
    hide_delay: float = Field(
        HIDE_DELAY_SECONDS,
        ge=0.0,
        le=5.0,
        description="Seconds to wait for the caller's window to hide before capturing",
    )


class OcrRequest(BaseModel):
    image: str = Field(..., description="Base64 encoded image (PNG, JPEG, ...)")


def error_status(error: ScreenOcrError) -> int:
    """HTTP status code for a capture or OCR failure."""
    if isinstance(error, ImageDecodeError):
        return 400
    if isinstance(
        error, (CaptureError, EngineNotInstalledError, MissingLanguageDataError)
    ):
        return 503
    return 500


def create_app(
    orchestrator: Optional[CaptureOrchestrator] = None,
    pipeline: Optional[OcrPipeline] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        orchestrator: CaptureOrchestrator (the process-wide one by default)
        pipeline: OcrPipeline (a default pipeline otherwise)

    Returns:
        Configured FastAPI application
    """
    orchestrator = orchestrator or get_default_orchestrator()
    pipeline = pipeline or OcrPipeline()

    app = FastAPI(
        title="ScreenOCR API",
        description="Full-screen capture and text recognition",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost", "http://127.0.0.1", "tauri://localhost"],
        allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "ScreenOCR API",
            "version": "1.0.0",
            "endpoints": {
                "capture": "/capture",
                "ocr": "/ocr",
                "health": "/health",
            },
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        preferred = orchestrator.preference.get()
        return {
            "status": "healthy",
            "tesseract_installed": tesseract_available(),
            "preferred_backend": preferred.value if preferred else None,
        }

    # Plain ``def`` endpoints run in the threadpool; capture and OCR block.
    @app.post("/capture")
    def capture_endpoint(request: Optional[CaptureRequest] = None):
        """
        Capture the full screen, optionally after a delay that lets the
        caller's window finish hiding.
        """
        hide_delay = request.hide_delay if request is not None else HIDE_DELAY_SECONDS

        try:
            data, stats = capture_with_stats_after_hide(
                hide_delay=hide_delay, orchestrator=orchestrator
            )
        except ScreenOcrError as e:
            raise HTTPException(status_code=error_status(e), detail=str(e))
        except Exception as e:
            raise HTTPException(
                status_code=500, detail=f"Internal server error: {str(e)}"
            )

        return {
            "image": png_bytes_to_base64(data),
            "backend": stats["backend"],
            "stats": stats,
        }

    @app.post("/ocr")
    def ocr_endpoint(request: OcrRequest):
        """Recognize the text in a base64 encoded image."""
        try:
            text, stats = pipeline.process_base64(request.image)
        except ScreenOcrError as e:
            raise HTTPException(status_code=error_status(e), detail=str(e))
        except Exception as e:
            raise HTTPException(
                status_code=500, detail=f"Internal server error: {str(e)}"
            )

        return {"text": text, "stats": stats}

    return app


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to
        port: Port to bind to
    """
    import uvicorn

    app = create_app()

    print(f"🚀 Starting ScreenOCR API server on {host}:{port}")
    if not tesseract_available():
        print("⚠️  tesseract not found, /ocr will fail until it is installed")
    print(f"📖 API docs available at: http://{host}:{port}/docs")

    uvicorn.run(app, host=host, port=port)
