"""
Civic Desk - FastAPI Application Entry Point

Citizens file complaints with municipal departments; admins triage them and
rate resolved complaints, which awards or deducts civic credits.

DESIGN PRINCIPLES:
- Storage access only through repositories
- A complaint is rated once; credits follow the rating
- Domain errors are typed and mapped to HTTP status codes here
"""

import logging
import sys
import traceback
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.exceptions import (
    AlreadyRated,
    CivicDeskError,
    ComplaintNotFound,
    NotAuthorized,
    NotResolved,
    StorageContention,
    UnknownAccount,
)
from app.core.settings import settings
from app.config.firebase import initialize_firestore
from app.routes import admin, complaints, departments, health, users

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Citizen complaint intake, triage and civic credits",
    debug=settings.DEBUG
)


# Domain error -> HTTP status. Unlisted CivicDeskError subclasses map to 400.
ERROR_STATUS_CODES = {
    ComplaintNotFound: status.HTTP_404_NOT_FOUND,
    UnknownAccount: status.HTTP_404_NOT_FOUND,
    NotAuthorized: status.HTTP_403_FORBIDDEN,
    AlreadyRated: status.HTTP_409_CONFLICT,
    NotResolved: status.HTTP_409_CONFLICT,
    StorageContention: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(CivicDeskError)
async def domain_exception_handler(request: Request, exc: CivicDeskError):
    """Report domain failures as typed JSON errors."""
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__}
    )


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write("🔥 GLOBAL EXCEPTION HANDLER CAUGHT EXCEPTION\n")
    sys.stderr.write(f"Path: {request.url.path}\n")
    sys.stderr.write(f"Method: {request.method}\n")
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.flush()

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Internal server error: {str(exc)}"}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Catch Pydantic validation errors and log them."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


# CORS configuration - explicit origins only, configured via CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: logging and the Firestore connection
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    print(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except Exception as e:
        print(f"Warning: Firestore initialization failed: {e}")
        print("   The app will start but database operations may fail.")


@app.on_event("shutdown")
async def shutdown_event():
    print(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(departments.router)
app.include_router(complaints.router)
app.include_router(users.router)
app.include_router(admin.router)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "nearby": "/complaints/nearby?latitude={lat}&longitude={lng}&radius_km=5"
    }
