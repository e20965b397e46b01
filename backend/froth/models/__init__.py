"""
数据模型定义模块

所有模型都是不可变的 dataclass，没有持久化层。

模型按功能拆分：
- identity.py: 主体与身份状态
- store.py: 商品、权益、交易与商店状态
- daily_goals.py: 每日目标
"""
from .base import parse_datetime, utc_now
from .daily_goals import DailyGoal, DailyGoalsState, DailyGoalTemplate
from .identity import AuthSession, AuthUser, IdentityState
from .store import Entitlement, Product, PurchaseOutcome, StoreState, Transaction

__all__ = [
    "parse_datetime",
    "utc_now",
    "AuthUser",
    "AuthSession",
    "IdentityState",
    "Product",
    "Entitlement",
    "Transaction",
    "PurchaseOutcome",
    "StoreState",
    "DailyGoal",
    "DailyGoalTemplate",
    "DailyGoalsState",
]
