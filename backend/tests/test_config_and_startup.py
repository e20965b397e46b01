from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest
from tenacity import RetryError, stop_after_attempt, wait_fixed

from froth import backend_pre_start
from froth.api.errors import (
    EmailNotVerifiedError,
    NoPrincipalError,
    ProviderAuthError,
    VerificationFailedError,
    configuration_error,
)
from froth.core.config import Settings, parse_cors, parse_product_ids
from froth.models import parse_datetime


def test_parse_helpers():
    assert parse_cors("http://a.test, http://b.test") == ["http://a.test", "http://b.test"]
    assert parse_cors(["a"]) == ["a"]
    with pytest.raises(ValueError):
        parse_cors(123)

    assert parse_product_ids("a, b,,a") == frozenset({"a", "b"})
    assert parse_product_ids(["a", " b "]) == frozenset({"a", "b"})
    with pytest.raises(ValueError):
        parse_product_ids(1)


def test_settings_validation_paths():
    s = Settings(
        FIREBASE_API_KEY="k",
        REVENUECAT_API_KEY="k",
        PRODUCT_IDS="com.froth.pro.yearly,com.froth.pro.monthly",
        BACKEND_CORS_ORIGINS="http://localhost:3000/",
    )
    assert s.PRODUCT_IDS == frozenset({"com.froth.pro.yearly", "com.froth.pro.monthly"})
    assert s.all_cors_origins == ["http://localhost:3000"]

    # Non-local env should reject default secrets.
    with pytest.raises(ValueError):
        Settings(ENVIRONMENT="production", FIREBASE_API_KEY="changethis", REVENUECAT_API_KEY="k")

    with pytest.raises(ValueError):
        Settings(FIREBASE_API_KEY="k", REVENUECAT_API_KEY="k", PRODUCT_IDS="com.froth.tips.small")


def test_error_codes():
    assert (EmailNotVerifiedError().code, EmailNotVerifiedError().status_code) == (401101, 403)
    assert (NoPrincipalError().code, NoPrincipalError().status_code) == (401102, 401)
    assert VerificationFailedError().status_code == 400
    assert isinstance(EmailNotVerifiedError(), ProviderAuthError)
    err = configuration_error("X")
    assert (err.code, err.message, err.status_code) == (500101, "X not configured", 500)


def test_parse_datetime():
    assert parse_datetime("2025-01-01T00:00:00Z") == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_datetime(None) is None
    assert parse_datetime("garbage") is None


def test_prestart_check_succeeds_on_any_http_response():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(401)

    backend_pre_start.init("https://rc.test/v1", transport=httpx.MockTransport(handler))
    assert len(seen) == 1


def test_prestart_check_retries_connection_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("offline")

    check = backend_pre_start.init.retry_with(stop=stop_after_attempt(3), wait=wait_fixed(0))
    with pytest.raises(RetryError):
        check("https://rc.test/v1", transport=httpx.MockTransport(handler))
    assert len(calls) == 3
