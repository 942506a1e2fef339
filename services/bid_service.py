"""
Bid Service - user bids on GeM tenders
"""
from datetime import datetime, timezone
from typing import List, Optional

from config.settings import get_supabase_admin_client, get_supabase_client
from services.supabase_service import execute_with_retry
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")

BIDS_TABLE = "user_bids"

_USER_BID_COLUMNS = """
    id,
    tender_id,
    bid_amount,
    notes,
    created_at,
    updated_at,
    tenders_gem:tender_id (
        bid_number,
        category,
        ministry,
        department
    )
"""

_ADMIN_BID_COLUMNS = """
    id,
    bid_amount,
    notes,
    created_at,
    tender_id,
    user_id,
    tenders_gem:tender_id (
        bid_number,
        ministry,
        department
    ),
    profiles:user_id (
        full_name,
        username
    )
"""


def _format_user_bid(row: dict) -> dict:
    return {
        "id": row.get("id"),
        "tender_id": row.get("tender_id"),
        "bid_amount": row.get("bid_amount"),
        "notes": row.get("notes"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "tender": row.get("tenders_gem"),
    }


def list_user_bids(user_id: str) -> List[dict]:
    """Bids placed by a user, newest first, with the tender summary joined in."""
    def _run():
        return (
            get_supabase_client().table(BIDS_TABLE)
            .select(_USER_BID_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )

    res = execute_with_retry(_run)
    return [_format_user_bid(row) for row in (res.data or [])]


def place_bid(user_id: str, tender_id: int, bid_amount: float, notes: Optional[str] = None) -> dict:
    """Create or update the user's bid on a tender (one bid per user and tender)."""
    if bid_amount is None or bid_amount <= 0:
        raise ValidationError("Bid amount must be greater than zero")

    record = {
        "user_id": user_id,
        "tender_id": tender_id,
        "bid_amount": bid_amount,
        "notes": (notes or "").strip() or None,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    res = (
        get_supabase_client().table(BIDS_TABLE)
        .upsert(record, on_conflict="user_id,tender_id")
        .execute()
    )
    logger.info(f"Bid recorded for user {user_id[:8]}... on tender {tender_id}")
    rows = res.data or []
    return rows[0] if rows else record


def delete_bid(user_id: str, bid_id: str) -> None:
    """Withdraw one of the user's own bids."""
    supabase = get_supabase_client()
    res = execute_with_retry(
        lambda: supabase.table(BIDS_TABLE).select("id, user_id").eq("id", bid_id).limit(1).execute()
    )
    rows = res.data or []
    if not rows:
        raise NotFoundError("Bid not found")
    if rows[0].get("user_id") != user_id:
        raise PermissionDeniedError("You can only withdraw your own bids")
    supabase.table(BIDS_TABLE).delete().eq("id", bid_id).execute()
    logger.info(f"Bid {bid_id} withdrawn by user {user_id[:8]}...")


def list_all_bids() -> List[dict]:
    """Every bid with its tender and bidder, for the admin review table."""
    def _run():
        return (
            get_supabase_admin_client().table(BIDS_TABLE)
            .select(_ADMIN_BID_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )

    res = execute_with_retry(_run)
    bids = []
    for row in res.data or []:
        tender = row.get("tenders_gem") or {}
        profile = row.get("profiles") or {}
        bids.append({
            "id": row.get("id"),
            "bid_amount": row.get("bid_amount"),
            "notes": row.get("notes"),
            "created_at": row.get("created_at"),
            "tender_id": row.get("tender_id"),
            "user": {
                "id": row.get("user_id") or "Unknown",
                "name": profile.get("full_name") or profile.get("username") or "Unknown",
            },
            "tender": {
                "bid_number": tender.get("bid_number") or "Unknown",
                "ministry": tender.get("ministry") or "Unknown",
                "department": tender.get("department") or "Unknown",
            },
        })
    return bids
