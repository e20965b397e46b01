from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from froth.api.errors import AppError
from froth.enums import PurchaseStatus
from froth.integrations.firebase_auth import auth_error
from froth.main import app
from froth.models import AuthUser, Entitlement, Product, PurchaseOutcome, Transaction, utc_now
from froth.services.daily_goals import DailyGoalTracker
from froth.shell import FrothApp

PRO = "com.froth.pro.yearly"
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeAuth:
    """In-memory auth provider. Accounts are keyed by email."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.user: AuthUser | None = None
        self.listeners: dict[int, Callable[[AuthUser | None], None]] = {}
        self.verification_emails: list[str] = []
        self.fail: dict[str, AppError] = {}
        self.closed = False
        self._next_handle = 0

    @property
    def current_user(self) -> AuthUser | None:
        return self.user

    def add_state_listener(self, listener: Callable[[AuthUser | None], None]) -> int:
        self._next_handle += 1
        self.listeners[self._next_handle] = listener
        return self._next_handle

    def remove_state_listener(self, handle: int) -> None:
        self.listeners.pop(handle, None)

    def _set_user(self, user: AuthUser | None) -> None:
        changed = user != self.user
        self.user = user
        if changed:
            for listener in list(self.listeners.values()):
                listener(user)

    def _check(self, op: str) -> None:
        if op in self.fail:
            raise self.fail.pop(op)

    def _user_for(self, email: str) -> AuthUser:
        acc = self.accounts[email]
        return AuthUser(
            uid=acc["uid"],
            email=email,
            email_verified=acc["verified"],
            display_name=acc["display_name"],
        )

    def verify(self, email: str) -> None:
        """Simulates the user clicking the link in the verification email."""
        self.accounts[email]["verified"] = True

    async def create_user(self, email: str, password: str) -> AuthUser:
        self._check("create_user")
        if email in self.accounts:
            raise auth_error("EMAIL_EXISTS")
        if len(password) < 6:
            raise auth_error("WEAK_PASSWORD : Password should be at least 6 characters")
        self.accounts[email] = {
            "uid": f"uid-{len(self.accounts) + 1}",
            "password": password,
            "verified": False,
            "display_name": None,
        }
        user = self._user_for(email)
        self._set_user(user)
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        self._check("sign_in")
        acc = self.accounts.get(email)
        if acc is None or acc["password"] != password:
            raise auth_error("INVALID_LOGIN_CREDENTIALS")
        user = self._user_for(email)
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        self._set_user(None)

    async def send_email_verification(self) -> None:
        self._check("send_email_verification")
        assert self.user is not None
        self.verification_emails.append(self.user.email or "")

    async def update_profile(self, *, display_name: str) -> AuthUser:
        self._check("update_profile")
        assert self.user is not None and self.user.email is not None
        self.accounts[self.user.email]["display_name"] = display_name
        user = self._user_for(self.user.email)
        self._set_user(user)
        return user

    async def reload(self) -> AuthUser:
        self._check("reload")
        assert self.user is not None and self.user.email is not None
        user = self._user_for(self.user.email)
        self._set_user(user)
        return user

    async def email_exists(self, email: str) -> bool:
        self._check("email_exists")
        return email in self.accounts

    async def aclose(self) -> None:
        self.closed = True


class FakeCommerce:
    """In-memory commerce provider."""

    def __init__(self) -> None:
        self.app_user_id = "$RCAnonymousID:test"
        self.catalog: list[Product] = [
            Product(identifier=PRO, display_name="Froth Pro", price=None, currency="USD"),
            Product(identifier="com.froth.tips.small", display_name="Tip"),
        ]
        self.entitlements: list[Entitlement] = []
        self.outcomes: dict[str, PurchaseStatus] = {}
        self.fail: dict[str, AppError] = {}
        self.synced_tokens: list[str | None] = []
        self.entitlement_calls = 0
        # per-subscriber entitlements and response delays; others see self.entitlements
        self.owned: dict[str, list[Entitlement]] = {}
        self.delays: dict[str, float] = {}
        self.closed = False

    def _check(self, op: str) -> None:
        if op in self.fail:
            raise self.fail.pop(op)

    async def fetch_products(self, identifiers: frozenset[str]) -> list[Product]:
        self._check("fetch_products")
        return [p for p in self.catalog if p.identifier in identifiers]

    async def purchase(self, product: Product, fetch_token: str | None) -> PurchaseOutcome:
        self._check("purchase")
        if not fetch_token:
            return PurchaseOutcome(status=PurchaseStatus.user_cancelled)
        status = self.outcomes.get(product.identifier, PurchaseStatus.verified)
        if status != PurchaseStatus.verified:
            return PurchaseOutcome(status=status)
        now = utc_now()
        self.entitlements.append(
            Entitlement(product_id=product.identifier, purchased_at=now, expires_at=now + timedelta(days=365))
        )
        return PurchaseOutcome(
            status=status,
            transaction=Transaction(transaction_id="tx-1", product_id=product.identifier, purchased_at=now),
        )

    async def sync_entitlements(self, fetch_token: str | None = None) -> None:
        self._check("sync_entitlements")
        self.synced_tokens.append(fetch_token)

    async def current_entitlements(self) -> list[Entitlement]:
        self._check("current_entitlements")
        subscriber = self.app_user_id
        self.entitlement_calls += 1
        if subscriber in self.delays:
            await asyncio.sleep(self.delays[subscriber])
        return list(self.owned.get(subscriber, self.entitlements))

    async def aclose(self) -> None:
        self.closed = True


class FirstChoice(random.Random):
    """Always picks the first template of each tier."""

    def choice(self, seq):  # type: ignore[override]
        return seq[0]


@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def fake_commerce() -> FakeCommerce:
    return FakeCommerce()


@pytest.fixture
def shell(fake_auth: FakeAuth, fake_commerce: FakeCommerce) -> FrothApp:
    return FrothApp(fake_auth, fake_commerce, daily_goals=DailyGoalTracker(rng=FirstChoice()))


@pytest.fixture(scope="function")
def client(shell: FrothApp) -> Generator[TestClient, None, None]:
    app.state.froth = shell
    with TestClient(app) as c:
        yield c
    app.state.froth = None
