"""
每日目标模型模块
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from froth.enums import DailyGoalAction, DailyGoalTier


@dataclass(frozen=True)
class DailyGoalTemplate:
    """
    每日目标模板

    - action: 推进该目标的行为
    - target_value: 达成所需的进度
    """
    title: str
    description: str
    tier: DailyGoalTier
    action: DailyGoalAction
    icon: str
    target_value: int


@dataclass(frozen=True)
class DailyGoal:
    id: str
    title: str
    description: str
    tier: DailyGoalTier
    action: DailyGoalAction
    icon: str
    target_value: int
    xp_reward: int
    created_at: datetime
    current_progress: int = 0
    is_completed: bool = False

    @property
    def progress_percentage(self) -> float:
        return min(1.0, self.current_progress / self.target_value)


@dataclass(frozen=True)
class DailyGoalsState:
    goals: tuple[DailyGoal, ...] = ()
    last_reset_at: datetime | None = None
    today_xp: int = 0
    total_xp: int = 0
    total_completed: int = 0
