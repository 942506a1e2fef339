from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from api.documents import content_disposition
import services.admin_service as admin_service
import services.bid_service as bid_service
import services.document_service as document_service
import services.keyword_service as keyword_service
from services.tender_models import TenderPage
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError


def test_normalize_keywords():
    raw = ["  laptop ", "Laptop", "", "office   chair", None, "LAPTOP", "desk"]
    assert keyword_service.normalize_keywords(raw) == ["laptop", "office chair", "desk"]


def test_update_keywords_for_missing_profile(monkeypatch):
    client = MagicMock()
    client.rpc.return_value.execute.return_value = SimpleNamespace(data=False)
    monkeypatch.setattr(keyword_service, "get_supabase_client", lambda: client)

    with pytest.raises(NotFoundError):
        keyword_service.update_user_keywords("user-1", ["laptop"])


def test_duplicate_customer_keyword(monkeypatch):
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = APIError(
        {"message": "duplicate key value", "code": "23505", "details": None, "hint": None}
    )
    monkeypatch.setattr(keyword_service, "get_supabase_client", lambda: client)

    with pytest.raises(ValidationError):
        keyword_service.add_customer_keyword("cust-1", "steel")


@pytest.mark.parametrize(
    "document_type, content_type, size",
    [
        ("passport", "application/pdf", 10),
        ("pan", "image/jpeg", 10),
        ("pan", None, 10),
        ("aadhar", "application/pdf", 5 * 1024 * 1024 + 1),
    ],
)
def test_invalid_documents_are_rejected(document_type, content_type, size):
    with pytest.raises(ValidationError):
        document_service.validate_document(document_type, content_type, size)


def test_valid_document_passes():
    document_service.validate_document("driving_license", "application/pdf", 5 * 1024 * 1024)


def test_storage_path_is_scoped_to_user():
    path = document_service.build_storage_path("user-1", "pan", "my/pan.pdf", now_ms=1700000000000)
    assert path == "user-1/pan/1700000000000_my_pan.pdf"


def test_place_bid_upserts_one_bid_per_tender(monkeypatch):
    client = MagicMock()
    upsert = client.table.return_value.upsert
    upsert.return_value.execute.return_value = SimpleNamespace(data=[{"id": "bid-1"}])
    monkeypatch.setattr(bid_service, "get_supabase_client", lambda: client)

    bid = bid_service.place_bid("user-1", 42, 999.0, "  ")

    assert bid == {"id": "bid-1"}
    client.table.assert_called_with("user_bids")
    record = upsert.call_args.args[0]
    assert record["tender_id"] == 42
    assert record["notes"] is None
    assert upsert.call_args.kwargs["on_conflict"] == "user_id,tender_id"


def test_place_bid_rejects_non_positive_amount():
    with pytest.raises(ValidationError):
        bid_service.place_bid("user-1", 42, 0)


def test_cannot_withdraw_someone_elses_bid(monkeypatch):
    client = MagicMock()
    select = client.table.return_value.select.return_value.eq.return_value.limit.return_value
    select.execute.return_value = SimpleNamespace(data=[{"id": "bid-1", "user_id": "other"}])
    monkeypatch.setattr(bid_service, "get_supabase_client", lambda: client)

    with pytest.raises(PermissionDeniedError):
        bid_service.delete_bid("user-1", "bid-1")
    client.table.return_value.delete.assert_not_called()


def test_admin_cannot_revoke_self(monkeypatch):
    monkeypatch.setattr(admin_service, "get_supabase_admin_client", lambda: pytest.fail("should not query"))
    with pytest.raises(ValidationError):
        admin_service.revoke_admin("admin-1", "admin-1")


def test_page_total_comes_from_first_row():
    page = TenderPage.from_rpc_rows(
        [{"id": 1, "bid_number": "GEM/1", "total_count": 31}], page=4, page_size=10
    )
    assert page.total_count == 31
    assert page.total_pages == 4

    empty = TenderPage.from_rpc_rows([], page=1, page_size=10)
    assert empty.total_count == 0
    assert empty.total_pages == 0


def _anon_client_forbidden():
    raise AssertionError("admin queries must use the service-role client")


def test_admin_listings_use_service_role_client(monkeypatch):
    admin_client = MagicMock()
    admin_client.table.return_value.select.return_value.order.return_value.execute.return_value = SimpleNamespace(
        data=[{"id": "bid-1", "user_id": "user-1", "tenders_gem": None, "profiles": None}]
    )
    monkeypatch.setattr(bid_service, "get_supabase_client", _anon_client_forbidden)
    monkeypatch.setattr(bid_service, "get_supabase_admin_client", lambda: admin_client)

    bids = bid_service.list_all_bids()

    assert bids[0]["user"] == {"id": "user-1", "name": "Unknown"}
    admin_client.table.assert_called_with("user_bids")


def test_verification_uses_service_role_client(monkeypatch):
    admin_client = MagicMock()
    update = admin_client.table.return_value.update
    update.return_value.eq.return_value.execute.return_value = SimpleNamespace(data=[{"id": "doc-1", "verified": True}])
    monkeypatch.setattr(document_service, "get_supabase_client", _anon_client_forbidden)
    monkeypatch.setattr(document_service, "get_supabase_admin_client", lambda: admin_client)

    assert document_service.set_verification("doc-1", True, "admin-1")["verified"] is True
    update.assert_called_once_with({"verified": True})


def test_admin_grant_uses_service_role_client(monkeypatch):
    admin_client = MagicMock()
    monkeypatch.setattr(admin_service, "get_supabase_admin_client", lambda: admin_client)

    admin_service.grant_admin("user-2", "admin-1")

    admin_client.table.assert_called_with("admin_users")
    admin_client.table.return_value.upsert.assert_called_once_with({"id": "user-2"})


def _documents_client(existing_rows):
    client = MagicMock()
    table = client.table.return_value
    lookup = table.select.return_value.eq.return_value.eq.return_value.limit.return_value
    lookup.execute.return_value = SimpleNamespace(data=existing_rows)
    return client


def test_failed_insert_removes_uploaded_file(monkeypatch):
    client = _documents_client([])
    client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("insert failed")
    monkeypatch.setattr(document_service, "get_supabase_client", lambda: client)
    monkeypatch.setattr(document_service, "build_storage_path", lambda *args: "user-1/pan/1_pan.pdf")

    with pytest.raises(RuntimeError):
        document_service.upload_document("user-1", "pan", "pan.pdf", b"%PDF-1.4", "application/pdf")

    bucket = client.storage.from_.return_value
    bucket.upload.assert_called_once()
    bucket.remove.assert_called_once_with(["user-1/pan/1_pan.pdf"])


def test_replacing_a_document_removes_previous_file(monkeypatch):
    client = _documents_client([{"id": "doc-1", "file_path": "user-1/pan/0_old.pdf"}])
    update = client.table.return_value.update.return_value.eq.return_value
    update.execute.return_value = SimpleNamespace(data=[{"id": "doc-1", "file_path": "user-1/pan/1_pan.pdf"}])
    monkeypatch.setattr(document_service, "get_supabase_client", lambda: client)
    monkeypatch.setattr(document_service, "build_storage_path", lambda *args: "user-1/pan/1_pan.pdf")

    document = document_service.upload_document("user-1", "pan", "pan.pdf", b"%PDF-1.4", "application/pdf")

    assert document["file_path"] == "user-1/pan/1_pan.pdf"
    client.storage.from_.return_value.remove.assert_called_once_with(["user-1/pan/0_old.pdf"])


@pytest.mark.parametrize(
    "file_name, fallback, encoded",
    [
        ("pan.pdf", "pan.pdf", "pan.pdf"),
        ('my "pan".pdf', "my _pan_.pdf", "my%20%22pan%22.pdf"),
        ("a;b\\c.pdf", "a_b_c.pdf", "a%3Bb%5Cc.pdf"),
        ("आधार.pdf", "____.pdf", "%E0%A4%86%E0%A4%A7%E0%A4%BE%E0%A4%B0.pdf"),
    ],
)
def test_download_header_escapes_file_name(file_name, fallback, encoded):
    header = content_disposition(file_name)
    assert header == f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"
