"""
FastAPI App Factory - Creates and configures the app
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from printer_host.core.errors import (
    InvalidArgumentError,
    NotReadyError,
    OutOfBoundsError,
    PrinterError,
    PrinterTimeoutError,
    ProtocolError,
    TransportError,
)
from printer_host.core.logger import log_critical
from .routes import connection_router, movement_router


def status_code_for(exc: PrinterError) -> int:
    """HTTP status for a driver error."""
    if isinstance(exc, (OutOfBoundsError, InvalidArgumentError, NotReadyError)):
        return 400
    if isinstance(exc, ProtocolError):
        return 502
    if isinstance(exc, TransportError):
        return 503
    if isinstance(exc, PrinterTimeoutError):
        return 504
    return 500


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="Printer Host API",
        description="REST API for driving a Marlin-style printer over serial",
        version="1.0.0",
    )

    # CORS - must be added first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PrinterError)
    async def printer_error_handler(request: Request, exc: PrinterError):
        code = status_code_for(exc)
        if code >= 500:
            log_critical(f"{request.url.path}: {exc}")
        return JSONResponse(
            status_code=code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    # Global exception handler to ensure CORS headers on errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_critical(f"{request.url.path}: unhandled {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)},
        )

    app.include_router(connection_router, prefix="/api")
    app.include_router(movement_router, prefix="/api")

    return app
