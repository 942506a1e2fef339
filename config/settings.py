"""
Configuration and Environment Setup
"""
import os
from dotenv import load_dotenv
from supabase import create_client, Client

from utils.logging_config import get_logger

logger = get_logger(__name__, "app")

# Load environment variables
load_dotenv()

def _clean_env(value: str | None) -> str:
    """Clean environment variable values"""
    if not value:
        return ""
    return value.strip().strip('"').strip("'")

# Environment variables
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL"))
SUPABASE_KEY = _clean_env(os.getenv("SUPABASE_KEY"))

# Service role key (for administrative operations like listing all storage objects)
SUPABASE_SERVICE_ROLE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_ROLE_KEY"))

# Frontend configuration
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:8080")
ALLOWED_ORIGINS = [
    FRONTEND_ORIGIN,
    "http://127.0.0.1:8080",
    "http://localhost:8080",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Tender listing
TENDER_PAGE_SIZE = int(os.getenv("TENDER_PAGE_SIZE", "10"))
RESULTS_CACHE_TTL_SECONDS = int(os.getenv("RESULTS_CACHE_TTL_SECONDS", "600"))  # 10 minutes
FILTER_OPTIONS_CACHE_TTL_SECONDS = int(os.getenv("FILTER_OPTIONS_CACHE_TTL_SECONDS", "1800"))  # 30 minutes
SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
FILTER_DEBOUNCE_MS = int(os.getenv("FILTER_DEBOUNCE_MS", "100"))
FILTER_COLUMNS = ("ministry", "department", "city")

# Documents
DOCUMENTS_BUCKET = os.getenv("DOCUMENTS_BUCKET", "user_documents")
MAX_DOCUMENT_SIZE_BYTES = int(os.getenv("MAX_DOCUMENT_SIZE_BYTES", str(5 * 1024 * 1024)))  # 5MB
ALLOWED_DOCUMENT_TYPES = {"application/pdf"}
DOCUMENT_TYPES = ("aadhar", "pan", "driving_license")

# Admin configuration
ADMIN_USER_IDS = {
    uid.strip()
    for uid in _clean_env(os.getenv("ADMIN_USER_IDS", "")).split(",")
    if uid.strip()
}

# Supabase clients are created on first use so importing settings never needs the network
supabase: Client | None = None
supabase_admin: Client | None = None


def _validate_supabase_config() -> None:
    if not SUPABASE_URL or not SUPABASE_URL.startswith("https://") or ".supabase.co" not in SUPABASE_URL:
        raise ValueError(f"Invalid SUPABASE_URL format: '{SUPABASE_URL}'. Expected like https://xxxxx.supabase.co")
    if not SUPABASE_KEY:
        raise ValueError("SUPABASE_KEY is missing")


def get_supabase_client() -> Client:
    """
    Get or reinitialize Supabase client.
    Returns a reliable connection with automatic retry on failure.
    """
    global supabase
    _validate_supabase_config()
    try:
        if supabase is None:
            supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
        return supabase
    except Exception as e:
        logger.warning(f"Error getting Supabase client: {e}")
        # Try to create a fresh client
        try:
            supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
            return supabase
        except Exception as e2:
            logger.error(f"Failed to create Supabase client: {e2}")
            raise Exception("Cannot connect to database. Please try again later.") from e2

def get_supabase_admin_client() -> Client:
    """
    Get a Supabase client with service role privileges.
    Used for administrative tasks like reading every user's documents.
    """
    global supabase_admin
    _validate_supabase_config()
    if not SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("SUPABASE_SERVICE_ROLE_KEY is missing from environment variables")

    try:
        if supabase_admin is None:
            supabase_admin = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
        return supabase_admin
    except Exception as e:
        logger.warning(f"Error getting Supabase admin client: {e}")
        try:
            supabase_admin = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
            return supabase_admin
        except Exception as e2:
            logger.error(f"Failed to create Supabase admin client: {e2}")
            raise Exception("Cannot connect to database with administrative privileges.") from e2

def reinitialize_supabase():
    """
    Force reinitialize Supabase client - creates fresh connection.
    Call this when experiencing connection issues.
    """
    global supabase, supabase_admin
    _validate_supabase_config()
    try:
        supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
        if SUPABASE_SERVICE_ROLE_KEY:
            supabase_admin = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
        logger.info("Reinitialized Supabase clients successfully")
        return supabase
    except Exception as e:
        logger.error(f"Failed to reinitialize Supabase client: {e}")
        raise Exception("Cannot reconnect to database. Please try again later.") from e
