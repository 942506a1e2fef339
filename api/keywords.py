"""
Saved keyword endpoints
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.tenders import get_tender_fetcher
from services.keyword_service import get_user_keywords, update_user_keywords
from services.tender_fetcher import TenderFetcher
from utils.auth import CurrentUser, get_current_user

router = APIRouter()


class KeywordsRequest(BaseModel):
    keywords: List[str]


@router.get("/keywords")
def my_keywords(user: CurrentUser = Depends(get_current_user)):
    return {"keywords": get_user_keywords(user.id)}


@router.put("/keywords")
def save_keywords(
    payload: KeywordsRequest,
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    """Replace the saved keywords; keyword-filtered listings are refreshed on next fetch."""
    keywords = update_user_keywords(user.id, payload.keywords)
    fetcher.clear_keywords()
    fetcher.clear_results()
    return {"success": True, "keywords": keywords}
