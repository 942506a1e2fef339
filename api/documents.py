"""
Identity document endpoints
"""
from io import BytesIO
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from config.settings import MAX_DOCUMENT_SIZE_BYTES
from services.document_service import (
    delete_document,
    download_document,
    list_user_documents,
    upload_document,
)
from utils.auth import CurrentUser, get_current_user, is_admin_user

router = APIRouter()


def content_disposition(file_name: str) -> str:
    """Attachment header safe for any stored name: ASCII fallback plus RFC 5987 filename*."""
    fallback = "".join(
        ch if 32 <= ord(ch) < 127 and ch not in '"\\;' else "_" for ch in file_name
    ) or "document.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.get("/documents")
def my_documents(user: CurrentUser = Depends(get_current_user)):
    return {"documents": list_user_documents(user.id)}


@router.post("/documents")
async def upload(
    file: UploadFile = File(...),
    document_type: str = Form(...),
    user: CurrentUser = Depends(get_current_user),
):
    """Upload a PDF identity document (aadhar, pan or driving_license)."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    # Read one byte past the limit so oversize uploads are rejected without buffering them whole
    content = await file.read(MAX_DOCUMENT_SIZE_BYTES + 1)
    document = upload_document(user.id, document_type, file.filename, content, file.content_type)
    return {"success": True, "document": document}


@router.get("/documents/{document_id}/download")
def download(document_id: str, user: CurrentUser = Depends(get_current_user)):
    file_name, content = download_document(document_id, user.id, is_admin=is_admin_user(user.id))
    return StreamingResponse(
        BytesIO(content),
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(file_name)},
    )


@router.delete("/documents/{document_id}")
def remove(document_id: str, user: CurrentUser = Depends(get_current_user)):
    delete_document(document_id, user.id)
    return {"success": True}
