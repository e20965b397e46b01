"""
商店模型模块

定义商品、权益、交易以及权益门面发布的状态快照。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from froth.enums import PurchaseStatus


@dataclass(frozen=True)
class Product:
    """
    可购买的商品

    identifier 是商店中的商品 ID（如 com.froth.pro.yearly），
    其余字段是服务商目录中的展示信息。
    """
    identifier: str
    display_name: str | None = None
    description: str | None = None
    offering_id: str | None = None
    package_id: str | None = None
    price: Decimal | None = None
    currency: str | None = None


@dataclass(frozen=True)
class Entitlement:
    """
    一条已购买的权益（服务商的 current entitlements 中的一项）

    - revoked_at: 退款 / 撤销时间，非空表示已撤销
    - expires_at: 过期时间，None 表示不过期（终身 / 非订阅商品）
    """
    product_id: str
    purchased_at: datetime | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    store: str | None = None
    is_sandbox: bool = False

    def is_active(self, now: datetime) -> bool:
        if self.revoked_at is not None:
            return False
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class Transaction:
    transaction_id: str | None
    product_id: str
    purchased_at: datetime | None = None


@dataclass(frozen=True)
class PurchaseOutcome:
    status: PurchaseStatus
    transaction: Transaction | None = None
    raw: dict[str, Any] | None = None


@dataclass(frozen=True)
class StoreState:
    """
    权益门面发布的状态快照

    purchased_product_ids 与 entitlements 总是在同一个快照里一起替换。
    """
    products: tuple[Product, ...] = ()
    purchased_product_ids: frozenset[str] = field(default_factory=frozenset)
    entitlements: tuple[Entitlement, ...] = ()
    is_loading: bool = False
    error_message: str | None = None
