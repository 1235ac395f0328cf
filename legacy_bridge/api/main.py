"""FastAPI application entry point."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import (
    ConfigurationError,
    ExtractionError,
    JobNotFoundError,
    JobStateError,
    LegacyBridgeError,
)
from .routes import imports

app = FastAPI(
    title="Legacy Bridge API",
    description="API for importing legacy accounting data",
    version=__version__,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(imports.router, prefix="/api/imports", tags=["imports"])

ERROR_STATUS = [
    (JobNotFoundError, 404),
    (JobStateError, 409),
    (ConfigurationError, 400),
    (ExtractionError, 400),
]


@app.exception_handler(LegacyBridgeError)
async def legacy_bridge_error_handler(request: Request, exc: LegacyBridgeError):
    """Map pipeline errors to HTTP responses."""
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return JSONResponse(status_code=status_code, content={"detail": exc.message})
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
