import importlib
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import HTTPException


def _auth_module():
    return importlib.import_module("utils.auth")


def _client_returning(user):
    client = MagicMock()
    client.auth.get_user.return_value = SimpleNamespace(user=user)
    return client


def test_bearer_header_resolves_user(monkeypatch):
    auth = _auth_module()
    user = SimpleNamespace(id="user-1234", email="bidder@example.com")
    monkeypatch.setattr(auth, "get_supabase_client", lambda: _client_returning(user))

    current = auth.get_current_user("Bearer token-abc")

    assert current == auth.CurrentUser(id="user-1234", email="bidder@example.com")


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer   "])
def test_missing_or_malformed_header_is_rejected(header):
    auth = _auth_module()
    with pytest.raises(HTTPException) as excinfo:
        auth.get_current_user(header)
    assert excinfo.value.status_code == 401


def test_unknown_token_is_rejected(monkeypatch):
    auth = _auth_module()
    client = MagicMock()
    client.auth.get_user.side_effect = Exception("invalid JWT")
    monkeypatch.setattr(auth, "get_supabase_client", lambda: client)

    with pytest.raises(HTTPException) as excinfo:
        auth.get_user_from_token("bad")
    assert excinfo.value.status_code == 401


def test_unreachable_auth_service_is_unavailable(monkeypatch):
    auth = _auth_module()
    client = MagicMock()
    client.auth.get_user.side_effect = httpx.ConnectError("connection refused")
    monkeypatch.setattr(auth, "get_supabase_client", lambda: client)
    monkeypatch.setattr(auth, "reinitialize_supabase", lambda: None)
    monkeypatch.setattr(auth.time, "sleep", lambda _: None)

    with pytest.raises(HTTPException) as excinfo:
        auth.get_user_from_token("token")
    assert excinfo.value.status_code == 503
    assert client.auth.get_user.call_count == 3


def test_admin_from_env_list(monkeypatch):
    auth = _auth_module()
    monkeypatch.setattr(auth, "ADMIN_USER_IDS", {"boss-id"})
    monkeypatch.setattr(auth, "get_supabase_client", lambda: pytest.fail("should not query"))
    assert auth.is_admin_user("boss-id") is True


def test_admin_from_rpc(monkeypatch):
    auth = _auth_module()
    client = MagicMock()
    client.rpc.return_value.execute.return_value = SimpleNamespace(data=True)
    monkeypatch.setattr(auth, "ADMIN_USER_IDS", set())
    monkeypatch.setattr(auth, "get_supabase_client", lambda: client)

    assert auth.is_admin_user("user-5678") is True
    client.rpc.assert_called_once_with("is_admin", {"_user_id": "user-5678"})


def test_admin_lookup_failure_denies(monkeypatch):
    auth = _auth_module()
    client = MagicMock()
    client.rpc.side_effect = RuntimeError("rpc missing")
    monkeypatch.setattr(auth, "ADMIN_USER_IDS", set())
    monkeypatch.setattr(auth, "get_supabase_client", lambda: client)

    assert auth.is_admin_user("user-5678") is False
    with pytest.raises(HTTPException) as excinfo:
        auth.require_admin(auth.CurrentUser(id="user-5678"))
    assert excinfo.value.status_code == 403
