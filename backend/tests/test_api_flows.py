from __future__ import annotations

import asyncio

from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import PRO
from froth.api.errors import ProviderCommerceError
from froth.enums import PurchaseStatus
from froth.main import app

CREDS = {"email": "a@froth.app", "password": "secret123"}


def test_health_check(client):
    r = client.get("/api/v1/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_before_shell_attached():
    app.state.froth = None
    r = TestClient(app).get("/api/v1/utils/health-check/")
    assert r.status_code == 503
    assert r.json() == {"code": 503000, "message": "Application is not ready", "data": None}


def test_register_verify_login_flow(client, fake_auth):
    r = client.post("/api/v1/auth/register", json={**CREDS, "username": "ana"})
    assert r.status_code == 200
    body = r.json()
    assert body["code"] == 0
    assert body["data"]["email_verified"] is False
    assert body["data"]["display_name"] == "ana"
    assert fake_auth.verification_emails == ["a@froth.app"]

    r = client.get("/api/v1/auth/state")
    data = r.json()["data"]
    assert data["is_authenticated"] is True
    assert data["is_usable"] is False
    assert data["last_email_sent_at"] is not None

    client.post("/api/v1/auth/logout")
    r = client.post("/api/v1/auth/login", json=CREDS)
    assert r.status_code == 403
    assert r.json() == {
        "code": 401101,
        "message": "Please verify your email before signing in.",
        "data": None,
    }
    assert client.get("/api/v1/auth/state").json()["data"]["user"] is None

    fake_auth.verify("a@froth.app")
    r = client.post("/api/v1/auth/login", json=CREDS)
    assert r.status_code == 200
    assert r.json()["data"]["email_verified"] is True
    assert client.get("/api/v1/auth/state").json()["data"]["is_usable"] is True

    r = client.post("/api/v1/auth/logout")
    assert r.json()["data"]["is_authenticated"] is False


def test_register_existing_email(client):
    client.post("/api/v1/auth/register", json=CREDS)
    r = client.post("/api/v1/auth/register", json=CREDS)
    assert r.status_code == 400
    assert r.json()["code"] == 401000
    assert r.json()["message"] == "This email is already registered. Please use a different email."


def test_resend_without_user(client, fake_auth):
    r = client.post("/api/v1/auth/verification/resend")
    assert r.status_code == 401
    assert r.json()["code"] == 401102
    assert fake_auth.verification_emails == []


def test_verification_refresh(client, fake_auth):
    client.post("/api/v1/auth/register", json=CREDS)
    r = client.post("/api/v1/auth/verification/refresh")
    assert r.json()["data"] == {"is_email_verified": False}

    fake_auth.verify("a@froth.app")
    r = client.post("/api/v1/auth/verification/refresh")
    assert r.json()["data"] == {"is_email_verified": True}

    r = client.post("/api/v1/auth/verification/resend")
    assert r.status_code == 200
    assert len(fake_auth.verification_emails) == 2


def test_email_exists(client):
    client.post("/api/v1/auth/register", json=CREDS)
    r = client.post("/api/v1/auth/email-exists", json={"email": "a@froth.app"})
    assert r.json()["data"] == {"exists": True}
    r = client.post("/api/v1/auth/email-exists", json={"email": "b@froth.app"})
    assert r.json()["data"] == {"exists": False}


def test_validation_error_handler(client):
    r = client.post("/api/v1/auth/login", json={"email": "not-an-email", "password": "x"})
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == 422000
    assert body["data"]["errors"]


def test_store_catalog_and_purchase(client, fake_commerce):
    r = client.get("/api/v1/store/products")
    assert [p["identifier"] for p in r.json()["data"]] == [PRO]

    r = client.get(f"/api/v1/store/entitlements/{PRO}")
    assert r.json()["data"] == {"product_id": PRO, "is_entitled": False}

    r = client.post("/api/v1/store/purchase", json={"product_id": PRO})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "user_cancelled"

    r = client.post("/api/v1/store/purchase", json={"product_id": PRO, "fetch_token": "receipt"})
    assert r.json()["data"] == {"status": "verified", "product_id": PRO, "transaction_id": "tx-1"}

    r = client.get("/api/v1/store/entitlements")
    data = r.json()["data"]
    assert data["purchased_product_ids"] == [PRO]
    assert data["is_pro_user"] is True
    assert data["pro_expiry"] is not None
    assert client.get(f"/api/v1/store/entitlements/{PRO}").json()["data"]["is_entitled"] is True


def test_purchase_unknown_product(client):
    r = client.post("/api/v1/store/purchase", json={"product_id": "com.froth.nope", "fetch_token": "r"})
    assert r.status_code == 404
    assert r.json()["code"] == 404101


def test_purchase_unverified(client, fake_commerce):
    fake_commerce.outcomes[PRO] = PurchaseStatus.unverified
    r = client.post("/api/v1/store/purchase", json={"product_id": PRO, "fetch_token": "receipt"})
    assert r.status_code == 400
    assert r.json() == {"code": 402101, "message": "Purchase verification failed", "data": None}


def test_purchase_provider_down(client, fake_commerce):
    fake_commerce.fail["purchase"] = ProviderCommerceError(message="Store unavailable: offline")
    r = client.post("/api/v1/store/purchase", json={"product_id": PRO, "fetch_token": "receipt"})
    assert r.status_code == 502
    assert r.json()["code"] == 402000


def test_restore(client, fake_commerce):
    from froth.models import Entitlement

    fake_commerce.entitlements = [Entitlement(product_id=PRO)]
    r = client.post("/api/v1/store/restore", json={"fetch_token": "receipt"})
    assert r.status_code == 200
    assert r.json()["data"]["is_pro_user"] is True
    assert fake_commerce.synced_tokens == ["receipt"]


def test_app_active_and_daily_goals(client):
    r = client.get("/api/v1/app/daily-goals")
    goals = r.json()["data"]["goals"]
    assert [g["tier"] for g in goals] == ["simple", "moderate", "advanced"]

    r = client.post("/api/v1/app/active")
    data = r.json()["data"]
    assert data["goals"][0]["is_completed"] is True
    assert data["today_xp"] == 15

    r = client.post("/api/v1/app/daily-goals/events", json={"action": "lesson_completed", "amount": 3})
    data = r.json()["data"]
    assert data["goals"][1]["is_completed"] is True
    assert data["today_xp"] == 45


def test_daily_goal_event_validation(client):
    r = client.post("/api/v1/app/daily-goals/events", json={"action": "dance"})
    assert r.status_code == 422


def test_http_exception_handler_branches():
    from froth import main as app_main

    exc = HTTPException(status_code=409, detail={"code": 409001, "message": "conflict"})
    resp = asyncio.run(app_main.http_error_handler(None, exc))  # type: ignore[arg-type]
    assert resp.status_code == 409
    assert b"409001" in resp.body

    resp = asyncio.run(app_main.http_error_handler(None, HTTPException(status_code=404, detail="nope")))  # type: ignore[arg-type]
    assert b"404000" in resp.body


def test_not_ready_without_shell():
    from fastapi.testclient import TestClient

    from froth.main import app

    # no lifespan: the shell is never attached
    c = TestClient(app)
    r = c.get("/api/v1/auth/state")
    assert r.status_code == 503
    assert r.json()["code"] == 503000
