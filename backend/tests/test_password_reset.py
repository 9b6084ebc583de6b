from urllib.parse import parse_qs, urlparse

import pytest

from conftest import signup

from campus.core.exceptions import UnauthorizedException
from campus.services import auth_service
from campus.services.email_service import EmailDeliveryError

GENERIC = auth_service.FORGOT_PASSWORD_MESSAGE


def _token_from(outbox):
    link = next(line for line in outbox.sent[-1]["text"].splitlines() if "reset-password?token=" in line)
    return parse_qs(urlparse(link.strip()).query)["token"][0]


def test_forgot_password_unknown_email_gives_same_answer(client, outbox, fake_redis):
    res = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert res.status_code == 200
    assert res.json()["data"]["message"] == GENERIC
    assert outbox.sent == []
    assert not any(k.startswith("reset_token:") for k in fake_redis.store)


def test_forgot_password_sends_link_and_stores_token(client, outbox, fake_redis):
    created = signup(client)
    res = client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    assert res.json()["data"]["message"] == GENERIC

    assert len(outbox.sent) == 1
    mail = outbox.sent[0]
    assert mail["to"] == "ada@example.com"
    assert "Password Reset" in mail["subject"]
    assert "http://frontend.test/reset-password?token=" in mail["html"]
    assert "Ada" in mail["text"]

    token = _token_from(outbox)
    assert fake_redis.store[f"reset_token:{token}"] == str(created["id"])
    assert fake_redis.ttls[f"reset_token:{token}"] == 3600


def test_reset_password_is_single_use(client, outbox):
    signup(client)
    client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    token = _token_from(outbox)
    body = {"token": token, "new_password": "NewPass123", "new_password_confirm": "NewPass123"}

    first = client.post("/api/auth/reset-password", json=body)
    assert first.status_code == 200
    second = client.post("/api/auth/reset-password", json=body)
    assert second.status_code == 401

    assert client.post("/api/auth/login", json={"email": "ada@example.com", "password": "Secret123"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "ada@example.com", "password": "NewPass123"}).status_code == 200


def test_reset_password_revokes_refresh_token_and_login_cache(client, outbox, fake_redis):
    created = signup(client)
    client.post("/api/auth/login", json={"email": "ada@example.com", "password": "Secret123"})
    assert "cache:login:ada@example.com" in fake_redis.store

    client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    token = _token_from(outbox)
    client.post(
        "/api/auth/reset-password",
        json={"token": token, "new_password": "NewPass123", "new_password_confirm": "NewPass123"},
    )
    assert "cache:login:ada@example.com" not in fake_redis.store
    assert client.post("/api/auth/refresh", json={"refresh_token": created["refresh_token"]}).status_code == 401


def test_reset_password_mismatch_is_bad_request(client, outbox):
    signup(client)
    client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    res = client.post(
        "/api/auth/reset-password",
        json={"token": _token_from(outbox), "new_password": "NewPass123", "new_password_confirm": "NewPass124"},
    )
    assert res.status_code == 400


def test_reset_password_requires_strong_password(client):
    res = client.post(
        "/api/auth/reset-password",
        json={"token": "x", "new_password": "alllower1", "new_password_confirm": "alllower1"},
    )
    assert res.status_code == 422


def test_reset_password_rejects_forged_and_access_tokens(client):
    created = signup(client)
    for token in ("forged", created["access_token"]):
        res = client.post(
            "/api/auth/reset-password",
            json={"token": token, "new_password": "NewPass123", "new_password_confirm": "NewPass123"},
        )
        assert res.status_code == 401


def test_signed_reset_token_without_record_is_rejected(client, cache):
    created = signup(client)
    token = auth_service.create_password_reset_token(subject=str(created["id"]), email=created["email"])
    from campus.db.session import SessionLocal

    with SessionLocal() as session, pytest.raises(UnauthorizedException):
        auth_service.reset_password(
            session, cache, token=token, new_password="NewPass123", new_password_confirm="NewPass123"
        )


def test_delivery_failure_is_logged_not_raised(client, outbox, monkeypatch, caplog):
    signup(client)

    def _boom(**kwargs):
        raise EmailDeliveryError("smtp down")

    monkeypatch.setattr(outbox, "send_password_reset_email", _boom)
    res = client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    assert res.status_code == 200
    assert res.json()["data"]["message"] == GENERIC
    assert "could not be delivered" in caplog.text


def test_reset_record_is_taken_in_one_redis_call(client, outbox, fake_redis, monkeypatch):
    signup(client)
    client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
    token = _token_from(outbox)
    key = f"reset_token:{token}"

    plain_get = fake_redis.get

    def _get(name):
        # a separate read would let two requests see the same record
        assert name != key
        return plain_get(name)

    monkeypatch.setattr(fake_redis, "get", _get)
    body = {"token": token, "new_password": "NewPass123", "new_password_confirm": "NewPass123"}
    assert client.post("/api/auth/reset-password", json=body).status_code == 200
    assert key not in fake_redis.store
