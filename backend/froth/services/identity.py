"""
身份门面

封装认证服务商的注册、登录、登出和邮箱验证，并通过 Observable 发布身份状态。

只有用户存在且邮箱已验证时，主体才被应用其余部分视为可用：
登录时如果服务商返回的验证标记为 False，门面会立即登出该用户。
"""
from __future__ import annotations

import logging
from types import TracebackType

from froth.api.errors import AppError, EmailNotVerifiedError, NoPrincipalError
from froth.core.observable import Observable
from froth.models import AuthUser, IdentityState, utc_now
from froth.services.ports import AuthProvider

logger = logging.getLogger(__name__)


class IdentityFacade:
    """
    身份门面

    构造时向服务商注册一个认证状态监听器（跨设备登出、令牌失效等都会经由它
    重新发布状态），dispose() 时注销。
    """

    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider
        user = provider.current_user
        self.state: Observable[IdentityState] = Observable(
            IdentityState(user=user, is_email_verified=bool(user and user.email_verified))
        )
        self._listener_handle: int | None = provider.add_state_listener(
            self._on_auth_state_changed
        )

    def _on_auth_state_changed(self, user: AuthUser | None) -> None:
        self.state.update(user=user, is_email_verified=bool(user and user.email_verified))

    def _begin(self) -> None:
        self.state.update(is_loading=True, error_message=None)

    def _fail(self, exc: AppError) -> None:
        self.state.update(is_loading=False, error_message=exc.message)

    def _end(self) -> None:
        if self.state.value.is_loading:
            self.state.update(is_loading=False)

    async def register(self, email: str, password: str, username: str | None = None) -> AuthUser:
        """
        注册新用户

        创建账户后（可选）更新显示名，然后发送一次验证邮件。
        成功后用户保持登录，但标记为未验证。

        Raises:
            ProviderAuthError: 服务商拒绝（邮箱已注册、密码太弱、网络错误等）
            AppError: 缺少服务商配置
        """
        self._begin()
        try:
            user = await self._provider.create_user(email, password)
            if username:
                user = await self._provider.update_profile(display_name=username)
            await self._provider.send_email_verification()
        except AppError as e:
            logger.error(f"Registration failed: {e.message}")
            self._fail(e)
            raise
        finally:
            self._end()

        self.state.update(
            user=user,
            is_email_verified=False,
            is_loading=False,
            last_email_sent_at=utc_now(),
        )
        logger.info(f"Registered {user.uid}, verification email sent")
        return user

    async def authenticate(self, email: str, password: str) -> AuthUser:
        """
        登录

        Raises:
            ProviderAuthError: 服务商拒绝
            EmailNotVerifiedError: 邮箱未验证（此时已强制登出）
        """
        self._begin()
        try:
            user = await self._provider.sign_in(email, password)
        except AppError as e:
            self._fail(e)
            raise
        finally:
            self._end()

        if not user.email_verified:
            self._provider.sign_out()
            error = EmailNotVerifiedError()
            self.state.update(
                user=None, is_email_verified=False, is_loading=False, error_message=error.message
            )
            logger.info(f"Signed out unverified user {user.uid}")
            raise error

        self.state.update(user=user, is_email_verified=True, is_loading=False)
        return user

    async def resend_verification(self) -> None:
        """
        重新发送验证邮件

        Raises:
            NoPrincipalError: 没有已登录用户（不会调用服务商）
            ProviderAuthError: 服务商拒绝
        """
        if self._provider.current_user is None:
            error = NoPrincipalError()
            self.state.update(error_message=error.message)
            raise error

        self._begin()
        try:
            await self._provider.send_email_verification()
        except AppError as e:
            self._fail(e)
            raise
        finally:
            self._end()
        self.state.update(last_email_sent_at=utc_now())

    def sign_out(self) -> None:
        self._provider.sign_out()
        self.state.update(user=None, is_email_verified=False, error_message=None)

    async def refresh_verification_status(self) -> bool:
        """
        从服务商重新加载用户并发布最新的验证标记

        用于用户手动触发的轮询（没有定时轮询）。重新加载失败时保留原标记，
        错误写入 error_message。
        """
        if self._provider.current_user is None:
            self.state.update(is_email_verified=False)
            return False

        self._begin()
        try:
            user = await self._provider.reload()
        except AppError as e:
            self.state.update(error_message=f"Failed to refresh user: {e.message}")
            return self.state.value.is_email_verified
        finally:
            self._end()

        self.state.update(user=user, is_email_verified=user.email_verified)
        return user.email_verified

    async def email_exists(self, email: str) -> bool:
        try:
            return await self._provider.email_exists(email)
        except AppError as e:
            logger.warning(f"Email lookup failed: {e.message}")
            return False

    def dispose(self) -> None:
        if self._listener_handle is not None:
            self._provider.remove_state_listener(self._listener_handle)
            self._listener_handle = None
        self.state.clear()

    def __enter__(self) -> IdentityFacade:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()
