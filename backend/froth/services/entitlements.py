"""
权益门面

封装订阅服务商的商品目录、购买、恢复购买和当前权益枚举，
并通过 Observable 发布商店状态。
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from froth.api.errors import AppError, VerificationFailedError
from froth.core.config import settings
from froth.core.observable import Observable
from froth.enums import PurchaseStatus
from froth.models import Product, PurchaseOutcome, StoreState, utc_now
from froth.services.ports import CommerceProvider

logger = logging.getLogger(__name__)


class EntitlementFacade:
    """
    权益门面

    - 商品目录只包含固定的商品 ID 集合
    - 取消购买和待处理购买都是正常结果，不记录错误
    - 权益集合总是整体替换
    """

    def __init__(
        self,
        provider: CommerceProvider,
        *,
        product_ids: Iterable[str] | None = None,
        pro_product_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._provider = provider
        self.product_ids = frozenset(product_ids if product_ids is not None else settings.PRODUCT_IDS)
        self.pro_product_id = pro_product_id or settings.PRO_PRODUCT_ID
        self._clock = clock
        self.state: Observable[StoreState] = Observable(StoreState())

    async def start(self) -> None:
        """启动时加载商品目录并刷新权益，失败只记录错误信息"""
        await self.load_catalog()
        try:
            await self.refresh_entitlements()
        except AppError as e:
            logger.error(f"Initial entitlement refresh failed: {e.message}")
            self.state.update(error_message=f"Failed to load purchases: {e.message}")

    async def load_catalog(self) -> None:
        self.state.update(is_loading=True, error_message=None)
        try:
            products = await self._provider.fetch_products(self.product_ids)
        except AppError as e:
            logger.error(f"Failed to load products: {e.message}")
            self.state.update(is_loading=False, error_message=f"Failed to load products: {e.message}")
            return
        self.state.update(products=tuple(products), is_loading=False)

    def find_product(self, product_id: str) -> Product | None:
        for product in self.state.value.products:
            if product.identifier == product_id:
                return product
        return None

    async def purchase(self, product: Product, fetch_token: str | None = None) -> PurchaseOutcome:
        """
        购买商品

        Raises:
            VerificationFailedError: 服务商未能验证凭证
            ProviderCommerceError: 服务商请求失败
        """
        self.state.update(error_message=None)
        try:
            outcome = await self._provider.purchase(product, fetch_token)
        except AppError as e:
            self.state.update(error_message=e.message)
            raise

        if outcome.status == PurchaseStatus.unverified:
            error = VerificationFailedError()
            self.state.update(error_message=error.message)
            raise error

        if outcome.status != PurchaseStatus.verified:
            logger.info(f"Purchase of {product.identifier} ended as {outcome.status.value}")
            return outcome

        # The receipt post above is the finalization step on the provider side.
        logger.info(
            f"Purchase finished: {product.identifier} "
            f"{outcome.transaction.transaction_id if outcome.transaction else ''}"
        )
        try:
            await self.refresh_entitlements()
        except AppError as e:
            self.state.update(error_message=f"Failed to refresh purchases: {e.message}")
        return outcome

    async def restore(self, fetch_token: str | None = None) -> None:
        """恢复购买：先让服务商从平台账户同步，再刷新权益集合"""
        self.state.update(is_loading=True, error_message=None)
        try:
            await self._provider.sync_entitlements(fetch_token)
            await self.refresh_entitlements()
        except AppError as e:
            logger.error(f"Failed to restore purchases: {e.message}")
            self.state.update(error_message=f"Failed to restore purchases: {e.message}")
        finally:
            self.state.update(is_loading=False)

    async def refresh_entitlements(self) -> frozenset[str]:
        """
        枚举服务商的当前权益，过滤掉已撤销和已过期的记录，整体替换本地集合

        请求期间订阅者 ID 发生了切换（登录 / 登出）时丢弃结果，保留当前集合。
        """
        subscriber = self._provider.app_user_id
        entitlements = await self._provider.current_entitlements()
        if self._provider.app_user_id != subscriber:
            logger.info(f"Dropped entitlements fetched for previous subscriber {subscriber}")
            return self.state.value.purchased_product_ids
        now = self._clock()
        active = tuple(e for e in entitlements if e.is_active(now))
        purchased = frozenset(e.product_id for e in active)
        self.state.update(entitlements=active, purchased_product_ids=purchased)
        return purchased

    def is_entitled(self, product_id: str) -> bool:
        return product_id in self.state.value.purchased_product_ids

    def is_pro_user(self) -> bool:
        return self.is_entitled(self.pro_product_id)

    def pro_expiry(self) -> datetime | None:
        """
        pro 权益在服务商处记录的过期时间

        不是 pro 用户，或者权益不过期时返回 None。
        """
        dates = [e.expires_at for e in self.state.value.entitlements if e.product_id == self.pro_product_id]
        if not dates or any(d is None for d in dates):
            return None
        return max(d for d in dates if d is not None)
