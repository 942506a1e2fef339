from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from services.admin_service import get_dashboard_stats, grant_admin, list_users, revoke_admin
from services.bid_service import list_all_bids
from services.document_service import list_all_documents, set_verification
from services.keyword_service import (
    add_customer,
    add_customer_keyword,
    delete_customer,
    delete_customer_keyword,
    list_customer_keywords,
    list_customers,
    rename_customer,
)
from utils.auth import CurrentUser, get_current_user, is_admin_user, require_admin
from utils.logging_config import get_logger

router = APIRouter(prefix="/admin")
logger = get_logger(__name__, "app")


class VerificationRequest(BaseModel):
    verified: bool


class CustomerRequest(BaseModel):
    name: str


class CustomerKeywordRequest(BaseModel):
    keyword: str


@router.get("/status")
def admin_status(user: CurrentUser = Depends(get_current_user)):
    return {"is_admin": is_admin_user(user.id)}


@router.get("/stats")
def dashboard_stats(_: CurrentUser = Depends(require_admin)):
    return get_dashboard_stats()


@router.get("/users")
def users(_: CurrentUser = Depends(require_admin)):
    return {"users": list_users()}


@router.post("/users/{user_id}/admin")
def make_admin(user_id: str, admin: CurrentUser = Depends(require_admin)):
    grant_admin(user_id, admin.id)
    return {"success": True, "is_admin": True}


@router.delete("/users/{user_id}/admin")
def remove_admin(user_id: str, admin: CurrentUser = Depends(require_admin)):
    revoke_admin(user_id, admin.id)
    return {"success": True, "is_admin": False}


@router.get("/bids")
def all_bids(_: CurrentUser = Depends(require_admin)):
    return {"bids": list_all_bids()}


@router.get("/documents")
def all_documents(_: CurrentUser = Depends(require_admin)):
    return {"documents": list_all_documents()}


@router.patch("/documents/{document_id}")
def verify_document(document_id: str, payload: VerificationRequest, admin: CurrentUser = Depends(require_admin)):
    return {"success": True, "document": set_verification(document_id, payload.verified, admin.id)}


@router.get("/customers")
def customers(_: CurrentUser = Depends(require_admin)):
    return {"customers": list_customers()}


@router.post("/customers")
def create_customer(payload: CustomerRequest, _: CurrentUser = Depends(require_admin)):
    return {"success": True, "customer": add_customer(payload.name)}


@router.patch("/customers/{customer_id}")
def update_customer(customer_id: str, payload: CustomerRequest, _: CurrentUser = Depends(require_admin)):
    return {"success": True, "customer": rename_customer(customer_id, payload.name)}


@router.delete("/customers/{customer_id}")
def remove_customer(customer_id: str, _: CurrentUser = Depends(require_admin)):
    delete_customer(customer_id)
    return {"success": True}


@router.get("/customers/{customer_id}/keywords")
def customer_keywords(customer_id: str, _: CurrentUser = Depends(require_admin)):
    return {"keywords": list_customer_keywords(customer_id)}


@router.post("/customers/{customer_id}/keywords")
def create_customer_keyword(
    customer_id: str,
    payload: CustomerKeywordRequest,
    _: CurrentUser = Depends(require_admin),
):
    return {"success": True, "keyword": add_customer_keyword(customer_id, payload.keyword)}


@router.delete("/customers/keywords/{keyword_id}")
def remove_customer_keyword(keyword_id: str, _: CurrentUser = Depends(require_admin)):
    delete_customer_keyword(keyword_id)
    return {"success": True}
