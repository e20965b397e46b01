"""Provider ports.

Facades depend on these protocols, not on the concrete REST clients in
:mod:`froth.integrations`, so tests and other vendors can be swapped in.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from froth.models import AuthUser, Entitlement, Product, PurchaseOutcome


class AuthProvider(Protocol):
    @property
    def current_user(self) -> AuthUser | None: ...

    def add_state_listener(self, listener: Callable[[AuthUser | None], None]) -> int: ...

    def remove_state_listener(self, handle: int) -> None: ...

    async def create_user(self, email: str, password: str) -> AuthUser: ...

    async def sign_in(self, email: str, password: str) -> AuthUser: ...

    def sign_out(self) -> None: ...

    async def send_email_verification(self) -> None: ...

    async def update_profile(self, *, display_name: str) -> AuthUser: ...

    async def reload(self) -> AuthUser: ...

    async def email_exists(self, email: str) -> bool: ...


class CommerceProvider(Protocol):
    app_user_id: str

    async def fetch_products(self, identifiers: frozenset[str]) -> list[Product]: ...

    async def purchase(self, product: Product, fetch_token: str | None) -> PurchaseOutcome: ...

    async def sync_entitlements(self, fetch_token: str | None = None) -> None: ...

    async def current_entitlements(self) -> list[Entitlement]: ...
