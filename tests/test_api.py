import pytest
from fastapi.testclient import TestClient

import api.bids as bids_api
import api.health as health_api
from api.tenders import get_tender_fetcher
from app import app
from services.tender_fetcher import TenderFetcher
from utils.auth import CurrentUser, get_current_user, require_admin

USER = CurrentUser(id="user-aaaa-1111", email="bidder@example.com")


@pytest.fixture
def fetcher(backend, caches):
    return TenderFetcher(backend, caches, page_size=10)


@pytest.fixture
def client(fetcher):
    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[require_admin] = lambda: USER
    app.dependency_overrides[get_tender_fetcher] = lambda: fetcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_tenders_is_cached_between_requests(client, backend):
    first = client.get("/tenders", params={"ministry": "Defence", "page": 2})
    second = client.get("/tenders", params={"ministry": "Defence", "page": 2})

    assert first.status_code == 200
    body = first.json()
    assert body["total_count"] == 25
    assert body["total_pages"] == 3
    assert body["page"] == 2
    assert len(body["rows"]) == 2
    assert body["has_keywords"] is False
    assert second.json() == body
    assert len(backend.calls) == 1
    assert backend.calls[0]["p_user_id"] == USER.id


def test_list_tenders_rejects_page_zero(client):
    assert client.get("/tenders", params={"page": 0}).status_code == 422


def test_backend_failure_maps_to_bad_gateway(client, backend):
    backend.fail = RuntimeError("statement timeout")

    response = client.get("/tenders")

    assert response.status_code == 502
    assert response.json()["code"] == "TENDER_FETCH_ERROR"

    backend.fail = None
    assert client.get("/tenders").status_code == 200
    assert len(backend.calls) == 2


def test_filter_options_endpoint(client, backend):
    response = client.get("/tenders/filters/city")
    assert response.status_code == 200
    assert response.json() == {"column": "city", "options": ["Delhi", "Mumbai"]}

    assert client.get("/tenders/filters/bid_number").status_code == 400


def test_refetch_drops_cached_pages(client, backend):
    client.get("/tenders")
    assert client.post("/tenders/refetch").json() == {"success": True}
    client.get("/tenders")
    assert len(backend.calls) == 2


def test_cache_stats_for_admins(client):
    client.get("/tenders")
    stats = client.get("/tenders/cache/stats").json()
    assert stats["results"]["entries"] == 1
    assert stats["in_flight"] == 0


def test_placing_a_bid_clears_listing_cache(client, backend, monkeypatch):
    recorded = {}

    def fake_place_bid(user_id, tender_id, bid_amount, notes=None):
        recorded.update(user_id=user_id, tender_id=tender_id, bid_amount=bid_amount)
        return {"id": "bid-1", "tender_id": tender_id, "bid_amount": bid_amount}

    monkeypatch.setattr(bids_api, "place_bid", fake_place_bid)

    client.get("/tenders")
    response = client.post("/bids", json={"tender_id": 7, "bid_amount": 1500.5})
    client.get("/tenders")

    assert response.status_code == 200
    assert response.json()["bid"]["id"] == "bid-1"
    assert recorded == {"user_id": USER.id, "tender_id": 7, "bid_amount": 1500.5}
    assert len(backend.calls) == 2


def test_bid_amount_must_be_positive(client):
    response = client.post("/bids", json={"tender_id": 7, "bid_amount": 0})
    assert response.status_code == 422


def test_non_pdf_upload_is_rejected(client):
    response = client.post(
        "/documents",
        data={"document_type": "pan"},
        files={"file": ("pan.png", b"\x89PNG", "image/png")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only PDF files are allowed"


def test_missing_token_is_unauthorized():
    app.dependency_overrides.clear()
    response = TestClient(app).get("/tenders")
    assert response.status_code == 401


def test_health_reports_cache_size(client, monkeypatch):
    def offline():
        raise ConnectionError("offline")

    monkeypatch.setattr(health_api, "get_supabase_client", offline)
    client.get("/tenders")

    body = client.get("/health").json()

    assert body["status"] == "unhealthy"
    assert body["error"] == "offline"
    assert set(body["cache"]) == {"results", "filter_options", "in_flight"}
