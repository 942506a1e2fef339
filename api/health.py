"""
Health check endpoints
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from config.settings import get_supabase_client
from services.supabase_service import TENDERS_TABLE
from utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__, "app")


@router.get("/")
def root():
    return {
        "message": "GeM Tender Portal API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@router.get("/health")
def health_check(request: Request):
    """Database reachability plus the size of this worker's tender caches."""
    caches = request.app.state.tender_caches
    report = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": {
            "results": len(caches.results),
            "filter_options": len(caches.filter_options),
            "in_flight": len(caches.in_flight),
        },
    }
    try:
        get_supabase_client().table(TENDERS_TABLE).select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return {**report, "status": "unhealthy", "database": "disconnected", "error": str(e)}
    return {**report, "status": "healthy", "database": "connected"}
