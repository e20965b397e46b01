"""
应用外壳（组合根）

负责组装认证客户端、订阅客户端、两个门面以及每日目标，并处理应用生命周期：
- launch(): 启动时初始化订阅连接（加载商品 + 刷新权益），并检查每日目标
- became_active(): 应用回到前台时重新检查每日目标
- close(): 注销认证监听器并关闭 HTTP 客户端

身份变为可用（已登录且邮箱已验证）时，订阅服务商的订阅者 ID 切换为用户 uid，
登出后切回匿名 ID。
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from froth.api.errors import AppError
from froth.core.config import settings
from froth.enums import DailyGoalAction
from froth.integrations.firebase_auth import FirebaseAuthClient
from froth.integrations.revenuecat import RevenueCatClient
from froth.models import DailyGoalsState, IdentityState
from froth.services.daily_goals import DailyGoalTracker
from froth.services.entitlements import EntitlementFacade
from froth.services.identity import IdentityFacade
from froth.services.ports import AuthProvider, CommerceProvider

logger = logging.getLogger(__name__)


class FrothApp:
    """组合根：整个应用只有一个实例"""

    def __init__(
        self,
        auth: AuthProvider,
        commerce: CommerceProvider,
        *,
        daily_goals: DailyGoalTracker | None = None,
    ) -> None:
        self.auth = auth
        self.commerce = commerce
        self.identity = IdentityFacade(auth)
        self.store = EntitlementFacade(commerce)
        self.daily_goals = daily_goals or DailyGoalTracker()
        self._anonymous_user_id = commerce.app_user_id
        self._refresh_task: asyncio.Task[Any] | None = None
        self._identity_sub = self.identity.state.subscribe(self._on_identity_changed)
        self._launched = False

    @classmethod
    def from_settings(cls) -> FrothApp:
        return cls(FirebaseAuthClient.from_settings(), RevenueCatClient.from_settings())

    def _on_identity_changed(self, state: IdentityState) -> None:
        user_id = state.user.uid if state.is_usable and state.user else self._anonymous_user_id
        if user_id == self.commerce.app_user_id:
            return
        logger.info(f"Commerce subscriber switched to {user_id}")
        self.commerce.app_user_id = user_id
        if not self._launched:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        # 只保留针对当前订阅者的刷新
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = loop.create_task(self._refresh_store())

    async def _refresh_store(self) -> None:
        try:
            await self.store.refresh_entitlements()
        except AppError as e:
            logger.error(f"Entitlement refresh after identity change failed: {e.message}")
            self.store.state.update(error_message=f"Failed to load purchases: {e.message}")

    async def launch(self) -> None:
        logger.info(f"Launching {settings.PROJECT_NAME}")
        await self.store.start()
        self.daily_goals.check_and_reset()
        self._launched = True

    def became_active(self) -> DailyGoalsState:
        """应用回到前台：跨天则重置每日目标，并记录一次打开"""
        self.daily_goals.check_and_reset()
        return self.daily_goals.record(DailyGoalAction.app_opened)

    async def close(self) -> None:
        self.identity.state.unsubscribe(self._identity_sub)
        self.identity.dispose()
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            await asyncio.gather(self._refresh_task, return_exceptions=True)
            self._refresh_task = None
        for client in (self.auth, self.commerce):
            aclose = getattr(client, "aclose", None)
            if aclose is not None:
                await aclose()
        logger.info("Shut down")
