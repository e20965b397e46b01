"""
API 请求/响应数据模型（Schema）

门面内部使用不可变 dataclass，这里的 Pydantic 模型只用于 HTTP 数据交换，
from_* 类方法负责从门面快照转换。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from froth.enums import DailyGoalAction, DailyGoalTier, PurchaseStatus
from froth.models import (
    AuthUser,
    DailyGoal,
    DailyGoalsState,
    Entitlement,
    IdentityState,
    Product,
    PurchaseOutcome,
    StoreState,
)

# ============================================================
# 通用响应模型
# ============================================================


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 消息（成功时为 "success"，错误时为错误描述）
    - data: 数据（成功时返回业务数据，错误时为 None）

    示例响应：
        {"code": 0, "message": "success", "data": {...}}
        {"code": 401101, "message": "Please verify your email before signing in.", "data": None}
    """
    code: int = 0
    message: str = "success"
    data: Any | None = None


# ============================================================
# 身份
# ============================================================


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    username: str | None = Field(default=None, max_length=64)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class EmailExistsRequest(BaseModel):
    email: EmailStr


class UserPublic(BaseModel):
    uid: str
    email: str | None = None
    email_verified: bool
    display_name: str | None = None

    @classmethod
    def from_user(cls, user: AuthUser) -> UserPublic:
        return cls(
            uid=user.uid,
            email=user.email,
            email_verified=user.email_verified,
            display_name=user.display_name,
        )


class IdentityStateData(BaseModel):
    """
    身份状态响应模型

    is_usable 为 True 表示已登录且邮箱已验证。
    """
    user: UserPublic | None = None
    is_authenticated: bool
    is_email_verified: bool
    is_usable: bool
    is_loading: bool
    error_message: str | None = None
    last_email_sent_at: datetime | None = None

    @classmethod
    def from_state(cls, state: IdentityState) -> IdentityStateData:
        return cls(
            user=UserPublic.from_user(state.user) if state.user else None,
            is_authenticated=state.is_authenticated,
            is_email_verified=state.is_email_verified,
            is_usable=state.is_usable,
            is_loading=state.is_loading,
            error_message=state.error_message,
            last_email_sent_at=state.last_email_sent_at,
        )


class VerificationStatusData(BaseModel):
    is_email_verified: bool


class EmailExistsData(BaseModel):
    exists: bool


# ============================================================
# 商店
# ============================================================


class ProductPublic(BaseModel):
    identifier: str
    display_name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    currency: str | None = None

    @classmethod
    def from_product(cls, product: Product) -> ProductPublic:
        return cls(
            identifier=product.identifier,
            display_name=product.display_name,
            description=product.description,
            price=product.price,
            currency=product.currency,
        )


class EntitlementPublic(BaseModel):
    product_id: str
    purchased_at: datetime | None = None
    expires_at: datetime | None = None
    store: str | None = None
    is_sandbox: bool = False

    @classmethod
    def from_entitlement(cls, e: Entitlement) -> EntitlementPublic:
        return cls(
            product_id=e.product_id,
            purchased_at=e.purchased_at,
            expires_at=e.expires_at,
            store=e.store,
            is_sandbox=e.is_sandbox,
        )


class PurchaseRequest(BaseModel):
    """
    购买请求模型

    fetch_token 是商店支付弹窗返回的凭证，为空表示用户关闭了弹窗。
    """
    product_id: str = Field(min_length=1, max_length=128)
    fetch_token: str | None = None


class RestoreRequest(BaseModel):
    fetch_token: str | None = None


class PurchaseData(BaseModel):
    status: PurchaseStatus
    product_id: str
    transaction_id: str | None = None

    @classmethod
    def from_outcome(cls, product_id: str, outcome: PurchaseOutcome) -> PurchaseData:
        return cls(
            status=outcome.status,
            product_id=product_id,
            transaction_id=outcome.transaction.transaction_id if outcome.transaction else None,
        )


class StoreStateData(BaseModel):
    products: list[ProductPublic]
    purchased_product_ids: list[str]
    entitlements: list[EntitlementPublic]
    is_pro_user: bool
    pro_expiry: datetime | None = None
    is_loading: bool
    error_message: str | None = None

    @classmethod
    def from_state(
        cls, state: StoreState, *, is_pro_user: bool, pro_expiry: datetime | None
    ) -> StoreStateData:
        return cls(
            products=[ProductPublic.from_product(p) for p in state.products],
            purchased_product_ids=sorted(state.purchased_product_ids),
            entitlements=[EntitlementPublic.from_entitlement(e) for e in state.entitlements],
            is_pro_user=is_pro_user,
            pro_expiry=pro_expiry,
            is_loading=state.is_loading,
            error_message=state.error_message,
        )


class EntitledData(BaseModel):
    product_id: str
    is_entitled: bool


# ============================================================
# 每日目标
# ============================================================


class DailyGoalPublic(BaseModel):
    id: str
    title: str
    description: str
    tier: DailyGoalTier
    action: DailyGoalAction
    icon: str
    target_value: int
    current_progress: int
    progress_percentage: float
    xp_reward: int
    is_completed: bool

    @classmethod
    def from_goal(cls, goal: DailyGoal) -> DailyGoalPublic:
        return cls(
            id=goal.id,
            title=goal.title,
            description=goal.description,
            tier=goal.tier,
            action=goal.action,
            icon=goal.icon,
            target_value=goal.target_value,
            current_progress=goal.current_progress,
            progress_percentage=goal.progress_percentage,
            xp_reward=goal.xp_reward,
            is_completed=goal.is_completed,
        )


class DailyGoalsData(BaseModel):
    goals: list[DailyGoalPublic]
    last_reset_at: datetime | None = None
    today_xp: int
    total_xp: int
    total_completed: int

    @classmethod
    def from_state(cls, state: DailyGoalsState) -> DailyGoalsData:
        return cls(
            goals=[DailyGoalPublic.from_goal(g) for g in state.goals],
            last_reset_at=state.last_reset_at,
            today_xp=state.today_xp,
            total_xp=state.total_xp,
            total_completed=state.total_completed,
        )


class DailyGoalEventRequest(BaseModel):
    action: DailyGoalAction
    amount: int = Field(default=1, ge=1, le=10000)
