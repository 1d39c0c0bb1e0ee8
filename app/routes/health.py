"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, HTTPException
from app.core.settings import settings
from app.services.report_store import InMemoryReportStore, get_report_store
from datetime import datetime


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
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/db")
async def database_health():
    """
    Storage connectivity check.
    Reads the report collection through the configured store.
    """
    try:
        store = get_report_store()
        reports = await store.get_all_reports()

        return {
            "status": "healthy",
            "database": "memory" if isinstance(store, InMemoryReportStore) else "firestore",
            "connected": True,
            "reports_count": len(reports),
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
