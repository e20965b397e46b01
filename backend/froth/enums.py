"""
枚举类型定义模块

所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
"""
from enum import Enum


class PurchaseStatus(str, Enum):
    """
    购买结果枚举

    - verified: 服务商已验证凭证，购买成功
    - unverified: 服务商拒绝了凭证（验证失败）
    - user_cancelled: 用户关闭了支付弹窗，属于正常结果
    - pending: 等待家长同意 / 延迟扣款等，属于正常结果
    """
    verified = "verified"
    unverified = "unverified"
    user_cancelled = "user_cancelled"
    pending = "pending"


class DailyGoalTier(str, Enum):
    """
    每日目标难度枚举

    每个难度对应固定的 XP 奖励，见 xp_reward。
    """
    simple = "simple"
    moderate = "moderate"
    advanced = "advanced"

    @property
    def xp_reward(self) -> int:
        return {"simple": 15, "moderate": 30, "advanced": 50}[self.value]


class DailyGoalAction(str, Enum):
    """
    推进每日目标的用户行为枚举
    """
    app_opened = "app_opened"
    lesson_completed = "lesson_completed"
    question_correct = "question_correct"
    xp_earned = "xp_earned"
    perfect_lesson = "perfect_lesson"
