"""
Tender listing endpoints
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from config.settings import get_supabase_client
from services.supabase_service import TENDERS_TABLE, execute_with_retry
from services.tender_fetcher import TenderFetcher
from services.tender_models import DateRange, TenderQuery
from utils.auth import CurrentUser, get_current_user, require_admin
from utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__, "app")


def get_tender_fetcher(request: Request) -> TenderFetcher:
    """The application-wide fetcher created at startup (see app.py)."""
    return request.app.state.tender_fetcher


@router.get("/tenders")
async def list_tenders(
    page: int = Query(default=1, ge=1),
    ministry: Optional[str] = None,
    department: Optional[str] = None,
    city: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    use_keywords: bool = False,
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    """One page of tenders matching the filters, served from cache when fresh."""
    query = TenderQuery(
        user_id=user.id,
        page=page,
        ministry=ministry,
        department=department,
        city=city,
        search=search,
        date_range=DateRange(start=start_date, end=end_date),
        use_keywords=use_keywords,
    )
    result = await fetcher.fetch(query)
    has_keywords = await fetcher.has_keywords(user.id)
    return {**result.to_dict(), "has_keywords": has_keywords}


@router.get("/tenders/filters/{column}")
async def get_filter_options(
    column: str,
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    """Distinct values for the ministry, department or city filter."""
    return {"column": column, "options": await fetcher.filter_options(column)}


@router.post("/tenders/refetch")
async def refetch_tenders(
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    """Drop cached pages and filter options so the next listing hits the backend."""
    logger.info(f"Tender caches cleared on request of user {user.id[:8]}...")
    fetcher.clear_results()
    return {"success": True}


@router.get("/tenders/cache/stats")
def tender_cache_stats(
    _: CurrentUser = Depends(require_admin),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    return fetcher.caches.get_cache_stats()


@router.get("/tenders/{tender_id}")
def get_tender(tender_id: int, user: CurrentUser = Depends(get_current_user)):
    """A single tender with its attached documents."""
    supabase = get_supabase_client()
    res = execute_with_retry(
        lambda: supabase.table(TENDERS_TABLE).select("*").eq("id", tender_id).limit(1).execute()
    )
    rows = res.data or []
    if not rows:
        raise HTTPException(status_code=404, detail="Tender not found")
    tender = rows[0]

    documents = []
    if tender.get("bid_id") is not None:
        docs = execute_with_retry(
            lambda: supabase.table("tender_documents")
            .select("id, doc_name, doc_url, page_number")
            .eq("bid_id", tender["bid_id"])
            .order("page_number")
            .execute()
        )
        documents = docs.data or []
    return {**tender, "documents": documents}
