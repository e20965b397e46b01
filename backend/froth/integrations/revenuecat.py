"""
RevenueCat 订阅管理服务

文档: https://www.revenuecat.com/docs/api-v1

封装商店侧需要的四个操作：
- fetch_products: 从 offerings 读取商品目录
- purchase: 提交商店凭证（receipt / purchase token）
- sync_entitlements: 以恢复购买的方式重新提交凭证
- current_entitlements: 枚举订阅者当前的全部权益
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

import httpx

from froth.api.errors import ProviderCommerceError, configuration_error
from froth.core.config import settings
from froth.enums import PurchaseStatus
from froth.models import Entitlement, Product, PurchaseOutcome, Transaction, parse_datetime

logger = logging.getLogger(__name__)

# RevenueCat 无法向商店验证凭证时返回 422
_RECEIPT_REJECTED_STATUS = 422


class RevenueCatClient:
    """RevenueCat 服务封装"""

    def __init__(
        self,
        api_key: str,
        *,
        app_user_id: str,
        platform: str = "ios",
        base_url: str = "https://api.revenuecat.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        初始化 RevenueCat 客户端

        Args:
            api_key: RevenueCat 公共 SDK Key
            app_user_id: 订阅者 ID（登录后为认证服务商的用户 ID）
            platform: X-Platform 头部值（ios / android 等）
        """
        self.api_key = api_key
        self.app_user_id = app_user_id
        self.platform = platform
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        logger.info("RevenueCat service initialized")

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> RevenueCatClient:
        return cls(
            settings.REVENUECAT_API_KEY,
            app_user_id=settings.APP_USER_ID,
            platform=settings.REVENUECAT_PLATFORM,
            base_url=settings.REVENUECAT_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def headers(self) -> dict[str, str]:
        if not self.api_key:
            raise configuration_error("REVENUECAT_API_KEY")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Platform": self.platform,
        }

    def _subscriber_url(self, suffix: str = "") -> str:
        return f"{self.base_url}/subscribers/{quote(self.app_user_id, safe='')}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"RevenueCat request failed: {e}")
            raise ProviderCommerceError(message=f"Store unavailable: {e}")

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.status_code in (200, 201):
            return
        body = self._json(response)
        logger.error(f"RevenueCat {action} error: {response.status_code} {response.text}")
        message = body.get("message") or f"HTTP {response.status_code}"
        raise ProviderCommerceError(message=f"{action} failed: {message}")

    async def get_subscriber_info(self) -> dict[str, Any]:
        """
        获取订阅者信息

        Returns:
            subscriber 对象（包含 subscriptions / non_subscriptions / entitlements）
        """
        r = await self._request("GET", self._subscriber_url())
        self._raise_for_status(r, "Get subscriber")
        subscriber = self._json(r).get("subscriber")
        return subscriber if isinstance(subscriber, dict) else {}

    async def fetch_products(self, identifiers: frozenset[str]) -> list[Product]:
        """
        获取商品目录

        遍历所有 offering 的 package，只保留 identifiers 中的商品，
        同一商品出现在多个 offering 时取第一次出现的。
        """
        r = await self._request("GET", self._subscriber_url("/offerings"))
        self._raise_for_status(r, "Fetch products")
        offerings = self._json(r).get("offerings") or []

        found: dict[str, Product] = {}
        for offering in offerings:
            if not isinstance(offering, dict):
                continue
            for package in offering.get("packages") or []:
                if not isinstance(package, dict):
                    continue
                product_id = package.get("platform_product_identifier")
                if product_id not in identifiers or product_id in found:
                    continue
                found[product_id] = Product(
                    identifier=product_id,
                    display_name=package.get("display_name") or offering.get("identifier"),
                    description=offering.get("description"),
                    offering_id=offering.get("identifier"),
                    package_id=package.get("identifier"),
                    price=self._parse_price(package.get("price")),
                    currency=package.get("currency"),
                )
        return [found[pid] for pid in sorted(found)]

    async def purchase(self, product: Product, fetch_token: str | None) -> PurchaseOutcome:
        """
        提交购买凭证

        Args:
            product: 要购买的商品
            fetch_token: 商店支付弹窗返回的凭证；None 表示用户关闭了弹窗

        Returns:
            PurchaseOutcome: verified / unverified / user_cancelled / pending
        """
        if not fetch_token:
            return PurchaseOutcome(status=PurchaseStatus.user_cancelled)

        payload: dict[str, Any] = {
            "app_user_id": self.app_user_id,
            "fetch_token": fetch_token,
            "product_id": product.identifier,
        }
        if product.price is not None:
            payload["price"] = float(product.price)
        if product.currency:
            payload["currency"] = product.currency

        r = await self._request("POST", f"{self.base_url}/receipts", json=payload)
        if r.status_code == _RECEIPT_REJECTED_STATUS:
            logger.warning(f"Receipt rejected for {product.identifier}: {r.text}")
            return PurchaseOutcome(status=PurchaseStatus.unverified, raw=self._json(r))
        self._raise_for_status(r, "Purchase")

        data = self._json(r)
        subscriber = data.get("subscriber") if isinstance(data.get("subscriber"), dict) else {}
        transaction = self._find_transaction(subscriber, product.identifier)
        if transaction is None:
            # Receipt accepted but the store has not settled the payment yet.
            return PurchaseOutcome(status=PurchaseStatus.pending, raw=data)
        return PurchaseOutcome(status=PurchaseStatus.verified, transaction=transaction, raw=data)

    async def sync_entitlements(self, fetch_token: str | None = None) -> None:
        """
        恢复购买

        有凭证时以 is_restore 重新提交，让 RevenueCat 从商店账户同步全部交易；
        没有凭证时服务商侧的订阅者记录就是最新状态，无需提交。
        """
        if not fetch_token:
            logger.info("No receipt to restore, using subscriber record as-is")
            return
        r = await self._request(
            "POST",
            f"{self.base_url}/receipts",
            json={"app_user_id": self.app_user_id, "fetch_token": fetch_token, "is_restore": True},
        )
        self._raise_for_status(r, "Restore")

    async def current_entitlements(self) -> list[Entitlement]:
        """
        枚举订阅者当前的全部权益（包含已撤销 / 已过期的记录，由调用方过滤）
        """
        subscriber = await self.get_subscriber_info()
        result: list[Entitlement] = []

        subscriptions = subscriber.get("subscriptions") or {}
        for product_id, sub in subscriptions.items():
            if not isinstance(sub, dict):
                continue
            result.append(
                Entitlement(
                    product_id=product_id,
                    purchased_at=parse_datetime(sub.get("purchase_date")),
                    expires_at=parse_datetime(sub.get("expires_date")),
                    revoked_at=parse_datetime(sub.get("refunded_at")),
                    store=sub.get("store"),
                    is_sandbox=bool(sub.get("is_sandbox", False)),
                )
            )

        non_subscriptions = subscriber.get("non_subscriptions") or {}
        for product_id, purchases in non_subscriptions.items():
            for item in purchases or []:
                if not isinstance(item, dict):
                    continue
                result.append(
                    Entitlement(
                        product_id=product_id,
                        purchased_at=parse_datetime(item.get("purchase_date")),
                        revoked_at=parse_datetime(item.get("refunded_at")),
                        store=item.get("store"),
                        is_sandbox=bool(item.get("is_sandbox", False)),
                    )
                )
        return result

    @staticmethod
    def _find_transaction(subscriber: dict[str, Any], product_id: str) -> Transaction | None:
        sub = (subscriber.get("subscriptions") or {}).get(product_id)
        if isinstance(sub, dict):
            return Transaction(
                transaction_id=sub.get("store_transaction_id"),
                product_id=product_id,
                purchased_at=parse_datetime(sub.get("purchase_date")),
            )
        purchases = (subscriber.get("non_subscriptions") or {}).get(product_id) or []
        if purchases and isinstance(purchases[-1], dict):
            latest = purchases[-1]
            return Transaction(
                transaction_id=latest.get("store_transaction_id") or latest.get("id"),
                product_id=product_id,
                purchased_at=parse_datetime(latest.get("purchase_date")),
            )
        return None

    @staticmethod
    def _parse_price(value: Any) -> Decimal | None:
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None

    async def aclose(self) -> None:
        await self._http.aclose()
