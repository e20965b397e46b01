"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

配置分为三部分：
- 应用外壳（API 前缀、CORS、Sentry、日志级别）
- 认证服务商（Firebase Authentication REST API）
- 订阅服务商（RevenueCat REST API）以及固定的商品 ID 集合
"""
import warnings  # 用于发出警告
from typing import Annotated, Any, Literal  # 类型注解工具

from pydantic import (
    AnyUrl,  # URL 类型验证
    BeforeValidator,  # 字段验证前的转换器
    HttpUrl,  # HTTP URL 类型验证
    computed_field,  # 计算字段装饰器
    model_validator,  # 模型验证器装饰器
)
from pydantic_settings import BaseSettings, SettingsConfigDict  # 配置管理
from typing_extensions import Self  # 用于类型注解中引用自身类型


def parse_cors(v: Any) -> list[str] | str:
    """
    解析 CORS 配置值

    支持两种格式：
    1. 逗号分隔的字符串："http://localhost:3000,http://localhost:3001"
    2. 列表格式：["http://localhost:3000", "http://localhost:3001"]

    Raises:
        ValueError: 当输入格式不正确时
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


def parse_product_ids(v: Any) -> frozenset[str]:
    """
    解析商品 ID 集合

    接受逗号分隔的字符串或任意可迭代对象，去除空白项。
    """
    if isinstance(v, str):
        return frozenset(i.strip() for i in v.split(",") if i.strip())
    if isinstance(v, list | tuple | set | frozenset):
        return frozenset(str(i).strip() for i in v if str(i).strip())
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        env_file="../.env",
        env_ignore_empty=True,  # 忽略空的环境变量
        extra="ignore",  # 忽略未定义的额外字段
    )
    PROJECT_NAME: str = "Froth"
    API_V1_STR: str = "/api/v1"  # API 版本前缀
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """所有 CORS 允许的源（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    SENTRY_DSN: HttpUrl | None = None

    # 所有服务商请求的超时时间（秒），超时行为完全交给 httpx
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Firebase Authentication（邮箱/密码注册、登录、邮箱验证）
    FIREBASE_API_KEY: str = "changethis"  # Web API Key
    FIREBASE_AUTH_BASE_URL: str = "https://identitytoolkit.googleapis.com/v1"
    FIREBASE_TOKEN_BASE_URL: str = "https://securetoken.googleapis.com/v1"
    VERIFICATION_CONTINUE_URL: str | None = None  # 验证邮件中的回跳地址

    # RevenueCat 配置（iOS/Android 订阅管理）
    REVENUECAT_API_KEY: str = "changethis"
    REVENUECAT_BASE_URL: str = "https://api.revenuecat.com/v1"
    REVENUECAT_PLATFORM: Literal["ios", "android", "amazon", "macos", "uikitformac"] = "ios"
    # 未登录时使用的匿名订阅者 ID；登录后使用认证服务商的用户 ID
    APP_USER_ID: str = "$RCAnonymousID:froth"

    # 固定的商品 ID 集合（商品目录只加载这些商品）
    PRODUCT_IDS: Annotated[
        frozenset[str] | str, BeforeValidator(parse_product_ids)
    ] = frozenset({"com.froth.pro.yearly"})
    PRO_PRODUCT_ID: str = "com.froth.pro.yearly"

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值

        本地环境只发出警告，其他环境直接报错，强制修改。

        Raises:
            ValueError: 在非本地环境使用默认值时
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("FIREBASE_API_KEY", self.FIREBASE_API_KEY)
        self._check_default_secret("REVENUECAT_API_KEY", self.REVENUECAT_API_KEY)

        return self

    @model_validator(mode="after")
    def _pro_product_in_catalog(self) -> Self:
        if self.PRO_PRODUCT_ID not in self.PRODUCT_IDS:
            raise ValueError(
                f"PRO_PRODUCT_ID {self.PRO_PRODUCT_ID!r} is not one of PRODUCT_IDS"
            )
        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
