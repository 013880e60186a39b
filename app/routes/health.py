"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, HTTPException
from app.config.firebase import get_db
from app.config.mock_firestore import MockFirestore
from app.core.settings import settings
from datetime import datetime, timezone


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Lists collections, which needs a working client but no data.
    """
    try:
        db = get_db()
        collections = [collection.id for collection in db.collections()]
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )

    return {
        "status": "healthy",
        "database": "mock" if isinstance(db, MockFirestore) else "firestore",
        "connected": True,
        "collections": collections,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
