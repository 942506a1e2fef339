"""
Admin Service - dashboard statistics and user administration
"""
from collections import Counter
from typing import Dict, List

from config.settings import get_supabase_admin_client
from services.supabase_service import count_rows, execute_with_retry, fetch_paginated_rows
from utils.errors import ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")
audit_logger = get_logger("gem_portal.audit", "audit")


def get_dashboard_stats() -> Dict[str, int]:
    return {
        "users": count_rows("profiles", get_supabase_admin_client),
        "documents": count_rows("user_documents", get_supabase_admin_client),
        "verified_documents": count_rows("user_documents", get_supabase_admin_client, verified=True),
        "bids": count_rows("user_bids", get_supabase_admin_client),
    }


def list_users() -> List[dict]:
    """Profiles with their bid and document counts and admin flag."""
    supabase = get_supabase_admin_client()
    profiles = execute_with_retry(
        lambda: supabase.table("profiles").select("*").order("created_at", desc=True).execute()
    ).data or []
    admin_ids = {
        row["id"]
        for row in (execute_with_retry(lambda: supabase.table("admin_users").select("id").execute()).data or [])
    }
    # One pass over each table instead of two count queries per profile
    bid_counts = Counter(
        row.get("user_id") for row in fetch_paginated_rows(lambda: supabase.table("user_bids").select("user_id"))
    )
    doc_counts = Counter(
        row.get("user_id")
        for row in fetch_paginated_rows(lambda: supabase.table("user_documents").select("user_id"))
    )

    return [
        {
            **profile,
            "bids_count": bid_counts.get(profile["id"], 0),
            "documents_count": doc_counts.get(profile["id"], 0),
            "is_admin": profile["id"] in admin_ids,
        }
        for profile in profiles
    ]


def grant_admin(user_id: str, acting_admin_id: str) -> None:
    get_supabase_admin_client().table("admin_users").upsert({"id": user_id}).execute()
    audit_logger.info(f"Admin {acting_admin_id[:8]}... granted admin to {user_id[:8]}...")


def revoke_admin(user_id: str, acting_admin_id: str) -> None:
    if user_id == acting_admin_id:
        raise ValidationError("You cannot remove your own admin access")
    get_supabase_admin_client().table("admin_users").delete().eq("id", user_id).execute()
    audit_logger.info(f"Admin {acting_admin_id[:8]}... revoked admin from {user_id[:8]}...")
