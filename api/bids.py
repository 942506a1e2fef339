"""
Bid endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.tenders import get_tender_fetcher
from services.bid_service import delete_bid, list_user_bids, place_bid
from services.tender_fetcher import TenderFetcher
from utils.auth import CurrentUser, get_current_user

router = APIRouter()


class PlaceBidRequest(BaseModel):
    tender_id: int
    bid_amount: float = Field(..., gt=0)
    notes: Optional[str] = None


@router.get("/bids")
def my_bids(user: CurrentUser = Depends(get_current_user)):
    return {"bids": list_user_bids(user.id)}


@router.post("/bids")
def create_or_update_bid(
    payload: PlaceBidRequest,
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    """Place (or revise) a bid; cached listings are dropped since bid state changed."""
    bid = place_bid(user.id, payload.tender_id, payload.bid_amount, payload.notes)
    fetcher.clear_results()
    return {"success": True, "bid": bid}


@router.delete("/bids/{bid_id}")
def withdraw_bid(
    bid_id: str,
    user: CurrentUser = Depends(get_current_user),
    fetcher: TenderFetcher = Depends(get_tender_fetcher),
):
    delete_bid(user.id, bid_id)
    fetcher.clear_results()
    return {"success": True}
