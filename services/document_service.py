"""
Document Service - identity document upload, download and verification
"""
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

from config.settings import (
    ALLOWED_DOCUMENT_TYPES,
    DOCUMENT_TYPES,
    DOCUMENTS_BUCKET,
    MAX_DOCUMENT_SIZE_BYTES,
    get_supabase_admin_client,
    get_supabase_client,
)
from services.supabase_service import execute_with_retry
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")
audit_logger = get_logger("gem_portal.audit", "audit")

DOCUMENTS_TABLE = "user_documents"


def validate_document(document_type: str, content_type: str | None, size: int) -> None:
    """Reject anything that is not a PDF under the size limit, or of an unknown type."""
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Unknown document type: {document_type}")
    if content_type not in ALLOWED_DOCUMENT_TYPES:
        raise ValidationError("Only PDF files are allowed")
    if size > MAX_DOCUMENT_SIZE_BYTES:
        raise ValidationError(f"File size must be less than {MAX_DOCUMENT_SIZE_BYTES // (1024 * 1024)}MB")


def build_storage_path(user_id: str, document_type: str, filename: str, now_ms: Optional[int] = None) -> str:
    # The user id prefix keeps each user's files isolated inside the bucket
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{user_id}/{document_type}/{stamp}_{safe_name}"


def _remove_stored_file(bucket, file_path: str) -> None:
    try:
        bucket.remove([file_path])
    except Exception as exc:
        logger.warning(f"Could not remove stored file {file_path}: {exc}")


def list_user_documents(user_id: str) -> List[dict]:
    def _run():
        return (
            get_supabase_client().table(DOCUMENTS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("document_type")
            .execute()
        )

    res = execute_with_retry(_run)
    return res.data or []


def upload_document(
    user_id: str,
    document_type: str,
    filename: str,
    content: bytes,
    content_type: str | None,
) -> dict:
    """
    Store a document in the bucket and record its metadata.

    A user keeps one document per type: uploading again replaces the
    metadata of the existing row and resets its verification.
    """
    validate_document(document_type, content_type, len(content))

    supabase = get_supabase_client()
    existing = execute_with_retry(
        lambda: supabase.table(DOCUMENTS_TABLE)
        .select("id, file_path")
        .eq("user_id", user_id)
        .eq("document_type", document_type)
        .limit(1)
        .execute()
    )
    existing_rows = existing.data or []

    bucket = supabase.storage.from_(DOCUMENTS_BUCKET)
    file_path = build_storage_path(user_id, document_type, filename)
    bucket.upload(file_path, content, {"content-type": content_type or "application/pdf"})

    try:
        if existing_rows:
            res = (
                supabase.table(DOCUMENTS_TABLE)
                .update({
                    "file_path": file_path,
                    "file_name": filename,
                    "uploaded_at": datetime.now(timezone.utc).isoformat(),
                    "verified": False,
                })
                .eq("id", existing_rows[0]["id"])
                .execute()
            )
        else:
            res = (
                supabase.table(DOCUMENTS_TABLE)
                .insert({
                    "user_id": user_id,
                    "document_type": document_type,
                    "file_path": file_path,
                    "file_name": filename,
                })
                .execute()
            )
    except Exception as exc:
        logger.error(f"Recording {document_type} document for user {user_id[:8]}... failed: {exc}")
        _remove_stored_file(bucket, file_path)
        raise

    previous_path = existing_rows[0].get("file_path") if existing_rows else None
    if previous_path and previous_path != file_path:
        _remove_stored_file(bucket, previous_path)

    logger.info(f"Uploaded {document_type} document for user {user_id[:8]}...")
    rows = res.data or []
    return rows[0] if rows else {"file_path": file_path, "file_name": filename, "document_type": document_type}


def get_document(document_id: str, client_factory: Callable[[], Any] = get_supabase_client) -> dict:
    res = execute_with_retry(
        lambda: client_factory().table(DOCUMENTS_TABLE)
        .select("*")
        .eq("id", document_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    if not rows:
        raise NotFoundError("Document not found")
    return rows[0]


def _ensure_access(document: dict, user_id: str, is_admin: bool) -> None:
    if not is_admin and document.get("user_id") != user_id:
        raise PermissionDeniedError("You do not have access to this document")


def download_document(document_id: str, user_id: str, is_admin: bool = False) -> Tuple[str, bytes]:
    """Return (file_name, content) for a document owned by the user, or any document for admins."""
    # Row-level security hides other users' rows and files from the anon client
    client_factory = get_supabase_admin_client if is_admin else get_supabase_client
    document = get_document(document_id, client_factory)
    _ensure_access(document, user_id, is_admin)
    content = client_factory().storage.from_(DOCUMENTS_BUCKET).download(document["file_path"])
    return document.get("file_name") or "document.pdf", content


def delete_document(document_id: str, user_id: str) -> None:
    """Remove the stored file first, then its metadata row."""
    document = get_document(document_id)
    _ensure_access(document, user_id, is_admin=False)

    supabase = get_supabase_client()
    supabase.storage.from_(DOCUMENTS_BUCKET).remove([document["file_path"]])
    supabase.table(DOCUMENTS_TABLE).delete().eq("id", document_id).execute()
    logger.info(f"Deleted document {document_id} for user {user_id[:8]}...")


def list_all_documents() -> List[dict]:
    """All uploaded documents with the owner's profile, for admin review."""
    supabase = get_supabase_admin_client()
    profiles = execute_with_retry(
        lambda: supabase.table("profiles").select("id, full_name, username").execute()
    )
    profiles_by_id = {p["id"]: p for p in (profiles.data or [])}

    docs = execute_with_retry(
        lambda: supabase.table(DOCUMENTS_TABLE).select("*").order("uploaded_at", desc=True).execute()
    )
    result = []
    for doc in docs.data or []:
        profile = profiles_by_id.get(doc.get("user_id")) or {}
        result.append({**doc, "owner": {
            "full_name": profile.get("full_name"),
            "username": profile.get("username"),
        }})
    return result


def set_verification(document_id: str, verified: bool, admin_id: str) -> dict:
    res = (
        get_supabase_admin_client().table(DOCUMENTS_TABLE)
        .update({"verified": verified})
        .eq("id", document_id)
        .execute()
    )
    rows = res.data or []
    if not rows:
        raise NotFoundError("Document not found")
    audit_logger.info(
        f"Admin {admin_id[:8]}... marked document {document_id} as {'verified' if verified else 'unverified'}"
    )
    return rows[0]
