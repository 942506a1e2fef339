"""
Keyword Service - saved search keywords and customer keyword lists
"""
from typing import Iterable, List

from postgrest.exceptions import APIError

from config.settings import get_supabase_client
from services.supabase_service import execute_with_retry
from utils.errors import NotFoundError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")

UNIQUE_VIOLATION = "23505"


def normalize_keywords(keywords: Iterable[str]) -> List[str]:
    """Trim, drop blanks and de-duplicate case-insensitively, keeping first spelling and order."""
    seen = set()
    result = []
    for raw in keywords or []:
        if not isinstance(raw, str):
            continue
        keyword = " ".join(raw.split())
        if not keyword or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        result.append(keyword)
    return result


def get_user_keywords(user_id: str) -> List[str]:
    res = execute_with_retry(
        lambda: get_supabase_client().rpc("get_user_keywords", {"p_user_id": user_id}).execute()
    )
    return res.data or []


def update_user_keywords(user_id: str, keywords: Iterable[str]) -> List[str]:
    cleaned = normalize_keywords(keywords)
    res = (
        get_supabase_client()
        .rpc("update_user_keywords", {"p_user_id": user_id, "p_keywords": cleaned})
        .execute()
    )
    if res.data is False:
        raise NotFoundError("Profile not found")
    logger.info(f"Updated {len(cleaned)} keywords for user {user_id[:8]}...")
    return cleaned


# ============================================================================
# Customers (admin)
# ============================================================================

def list_customers() -> List[dict]:
    res = execute_with_retry(
        lambda: get_supabase_client().table("customers").select("*").order("name").execute()
    )
    return res.data or []


def add_customer(name: str) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Customer name is required")
    res = get_supabase_client().table("customers").insert({"name": name}).execute()
    rows = res.data or []
    return rows[0] if rows else {"name": name}


def rename_customer(customer_id: str, name: str) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Customer name is required")
    res = get_supabase_client().table("customers").update({"name": name}).eq("id", customer_id).execute()
    rows = res.data or []
    if not rows:
        raise NotFoundError("Customer not found")
    return rows[0]


def delete_customer(customer_id: str) -> None:
    get_supabase_client().table("customers").delete().eq("id", customer_id).execute()


def list_customer_keywords(customer_id: str) -> List[dict]:
    res = execute_with_retry(
        lambda: get_supabase_client().table("customer_keywords")
        .select("*")
        .eq("customer_id", customer_id)
        .order("keyword")
        .execute()
    )
    return res.data or []


def add_customer_keyword(customer_id: str, keyword: str) -> dict:
    keyword = " ".join((keyword or "").split())
    if not keyword:
        raise ValidationError("Keyword is required")
    try:
        res = (
            get_supabase_client().table("customer_keywords")
            .insert({"customer_id": customer_id, "keyword": keyword})
            .execute()
        )
    except APIError as exc:
        if getattr(exc, "code", None) == UNIQUE_VIOLATION:
            raise ValidationError("This keyword already exists for the customer") from exc
        raise
    rows = res.data or []
    return rows[0] if rows else {"customer_id": customer_id, "keyword": keyword}


def delete_customer_keyword(keyword_id: str) -> None:
    get_supabase_client().table("customer_keywords").delete().eq("id", keyword_id).execute()
