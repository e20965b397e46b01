"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器。

两类服务商错误都是透传的：
- ProviderAuthError: 认证服务商拒绝（邮箱已注册、密码太弱、网络错误等）
- ProviderCommerceError: 订阅服务商失败
任何错误都不会自动重试，由用户重新发起操作。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息（用户友好的提示，可直接展示）
    - status_code: HTTP 状态码

    使用示例：
        raise AppError(code=402000, message="Store unavailable", status_code=502)
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class ProviderAuthError(AppError):
    """
    认证服务商错误

    provider_code 保留服务商返回的原始错误标识（如 EMAIL_EXISTS），
    message 是映射后的展示文案。
    """

    def __init__(
        self,
        *,
        message: str,
        provider_code: str | None = None,
        code: int = 401000,
        status_code: int = 400,
    ) -> None:
        super().__init__(code=code, message=message, status_code=status_code)
        self.provider_code = provider_code


class EmailNotVerifiedError(ProviderAuthError):
    def __init__(self) -> None:
        super().__init__(
            message="Please verify your email before signing in.",
            provider_code="EMAIL_NOT_VERIFIED",
            code=401101,
            status_code=403,
        )


class NoPrincipalError(ProviderAuthError):
    def __init__(self) -> None:
        super().__init__(
            message="No user signed in",
            provider_code="NO_PRINCIPAL",
            code=401102,
            status_code=401,
        )


class ProviderCommerceError(AppError):
    """订阅服务商错误（商品加载、购买、恢复购买）"""

    def __init__(
        self, *, message: str, code: int = 402000, status_code: int = 502
    ) -> None:
        super().__init__(code=code, message=message, status_code=status_code)


class VerificationFailedError(ProviderCommerceError):
    """服务商未能验证购买凭证"""

    def __init__(self, message: str = "Purchase verification failed") -> None:
        super().__init__(message=message, code=402101, status_code=400)


def configuration_error(name: str) -> AppError:
    """
    创建"缺少配置"异常（便捷函数）

    使用示例：
        if not api_key:
            raise configuration_error("FIREBASE_API_KEY")
    """
    return AppError(code=500101, message=f"{name} not configured", status_code=500)
