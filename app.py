"""
GeM Tender Portal API - Main Application
"""
import os
import re

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import logging
from utils.logging_config import get_logger

# Setup logger
logger = get_logger(__name__, "app")

# Import configuration
from config.settings import ALLOWED_ORIGINS

# Import API routers
from api import admin, bids, documents, health, keywords, tenders

from services.supabase_service import SupabaseTenderBackend
from services.tender_fetcher import TenderFetcher
from utils.cache_manager import TenderCaches
from utils.errors import PortalError

CORS_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1|.*\.lovable\.app|.*\.vercel\.app)(:\d+)?"

# Create FastAPI app
app = FastAPI(
    title="GeM Tender Portal API",
    version="1.0.0",
    description="Backend API for browsing GeM tenders, placing bids and managing documents",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Tender caches live with the application object and are shared by every request
app.state.tender_caches = TenderCaches()
app.state.tender_fetcher = TenderFetcher(SupabaseTenderBackend(), app.state.tender_caches)

# CORS configuration
cors_origins = list(ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition",
    ],
)


def _cors_headers(request: Request) -> dict:
    origin = request.headers.get("origin", "")
    if origin and (origin in cors_origins or re.match(CORS_ORIGIN_REGEX, origin)):
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "*",
        }
    return {}


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    """Map service-layer errors to their HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=_cors_headers(request),
    )


# Exception handler to ensure CORS headers are set on errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Ensure CORS headers are set even when exceptions occur"""
    cors_headers = _cors_headers(request)

    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=cors_headers
        )

    # Log unexpected errors
    logger.error(f"Unexpected error: {exc}", exc_info=True)

    # Provide more specific error messages for common issues
    error_msg = "Internal server error"
    exc_str = str(exc).lower()

    if "connection" in exc_str or "timeout" in exc_str:
        error_msg = "Database connection error. Please try again in a moment."
    elif "resource temporarily unavailable" in exc_str:
        error_msg = "Service temporarily unavailable. Please try again in a few moments."
    elif "permission denied" in exc_str or "forbidden" in exc_str:
        error_msg = "Access denied. Please check your permissions."

    return JSONResponse(
        status_code=500,
        content={"detail": error_msg},
        headers=cors_headers
    )

# Register API routers
app.include_router(health.router, tags=["Health"])
app.include_router(tenders.router, tags=["Tenders"])
app.include_router(bids.router, tags=["Bids"])
app.include_router(documents.router, tags=["Documents"])
app.include_router(keywords.router, tags=["Keywords"])
app.include_router(admin.router, tags=["Admin"])


@app.on_event("startup")
def log_startup():
    logger.info("=" * 80)
    logger.info("GeM Tender Portal API Starting")
    logger.info("Version: 1.0.0")
    logger.info("Docs: http://localhost:8000/docs")
    logger.info("=" * 80)


# Main entry point for local runs
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
