"""
身份模型模块

定义已登录主体（principal）及身份门面发布的状态快照。
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AuthUser:
    """
    认证服务商中的用户

    - uid: 服务商分配的不透明用户 ID
    - email_verified: 邮箱是否已通过邮件链接验证
    """
    uid: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None


@dataclass(frozen=True)
class AuthSession:
    """登录会话：当前用户及其令牌（只在认证客户端内部使用）"""
    user: AuthUser
    id_token: str
    refresh_token: str
    expires_at: datetime


@dataclass(frozen=True)
class IdentityState:
    """
    身份门面发布的状态快照

    只有 user 存在且 is_email_verified 为 True 时，主体才被应用其余部分视为可用。
    """
    user: AuthUser | None = None
    is_email_verified: bool = False
    is_loading: bool = False
    error_message: str | None = None
    last_email_sent_at: datetime | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_usable(self) -> bool:
        return self.user is not None and self.is_email_verified
