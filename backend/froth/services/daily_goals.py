"""
每日目标

应用每次回到前台时检查是否跨天：跨天则重新抽取三个目标（每个难度一个）
并清零当天获得的 XP；同一天保持原目标。
"""
from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from froth.core.observable import Observable
from froth.enums import DailyGoalAction, DailyGoalTier
from froth.models import DailyGoal, DailyGoalsState, DailyGoalTemplate, utc_now

logger = logging.getLogger(__name__)

# 三个目标全部完成时额外奖励的 XP
ALL_GOALS_BONUS_XP = 25

GOAL_TEMPLATES: dict[DailyGoalTier, tuple[DailyGoalTemplate, ...]] = {
    DailyGoalTier.simple: (
        DailyGoalTemplate("Daily Check-in", "Open the app today", DailyGoalTier.simple, DailyGoalAction.app_opened, "house.fill", 1),
        DailyGoalTemplate("First Lesson", "Complete 1 lesson", DailyGoalTier.simple, DailyGoalAction.lesson_completed, "play.circle.fill", 1),
        DailyGoalTemplate("Quick XP", "Earn 50 XP", DailyGoalTier.simple, DailyGoalAction.xp_earned, "star.fill", 50),
        DailyGoalTemplate("Learning Streak", "Maintain your streak", DailyGoalTier.simple, DailyGoalAction.lesson_completed, "flame.fill", 1),
    ),
    DailyGoalTier.moderate: (
        DailyGoalTemplate("Double Down", "Complete 3 lessons", DailyGoalTier.moderate, DailyGoalAction.lesson_completed, "list.bullet", 3),
        DailyGoalTemplate("Question Master", "Get 10 questions right", DailyGoalTier.moderate, DailyGoalAction.question_correct, "checkmark.circle.fill", 10),
        DailyGoalTemplate("XP Hunter", "Earn 150 XP", DailyGoalTier.moderate, DailyGoalAction.xp_earned, "target", 150),
        DailyGoalTemplate("Perfect Streak", "Complete 2 lessons perfectly", DailyGoalTier.moderate, DailyGoalAction.perfect_lesson, "crown.fill", 2),
    ),
    DailyGoalTier.advanced: (
        DailyGoalTemplate("Perfect Score", "Complete a lesson perfectly", DailyGoalTier.advanced, DailyGoalAction.perfect_lesson, "crown.fill", 1),
        DailyGoalTemplate("Question Streak", "Get 15 questions right in a row", DailyGoalTier.advanced, DailyGoalAction.question_correct, "bolt.fill", 15),
        DailyGoalTemplate("XP Champion", "Earn 300 XP", DailyGoalTier.advanced, DailyGoalAction.xp_earned, "trophy.fill", 300),
        DailyGoalTemplate("Module Master", "Complete 5 lessons", DailyGoalTier.advanced, DailyGoalAction.lesson_completed, "graduationcap.fill", 5),
    ),
}


class DailyGoalTracker:
    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock
        self.state: Observable[DailyGoalsState] = Observable(DailyGoalsState())

    def _generate(self, now: datetime) -> tuple[DailyGoal, ...]:
        goals = []
        for tier in (DailyGoalTier.simple, DailyGoalTier.moderate, DailyGoalTier.advanced):
            t = self._rng.choice(GOAL_TEMPLATES[tier])
            goals.append(
                DailyGoal(
                    id=uuid.uuid4().hex,
                    title=t.title,
                    description=t.description,
                    tier=t.tier,
                    action=t.action,
                    icon=t.icon,
                    target_value=t.target_value,
                    xp_reward=t.tier.xp_reward,
                    created_at=now,
                )
            )
        logger.info(f"Generated daily goals: {[g.title for g in goals]}")
        return tuple(goals)

    def check_and_reset(self, now: datetime | None = None) -> bool:
        """
        检查是否需要重置每日目标

        Returns:
            是否生成了新目标
        """
        now = now or self._clock()
        current = self.state.value
        if current.last_reset_at is not None and current.last_reset_at.date() == now.date():
            return False

        self.state.update(goals=self._generate(now), last_reset_at=now, today_xp=0)
        return True

    def record(self, action: DailyGoalAction, amount: int = 1) -> DailyGoalsState:
        """
        记录一次用户行为并推进匹配的目标

        打卡类目标（app_opened）直接置为完成进度，其余按 amount 累加。
        目标奖励的 XP 只计入总数，不再推进 XP 类目标。
        """
        current = self.state.value
        goals = list(current.goals)
        earned = 0
        completed = 0
        for i, goal in enumerate(goals):
            if goal.is_completed or goal.action != action:
                continue
            if action == DailyGoalAction.app_opened:
                progress = goal.target_value
            else:
                progress = goal.current_progress + amount
            done = progress >= goal.target_value
            goals[i] = replace(goal, current_progress=progress, is_completed=done)
            if done:
                earned += goal.xp_reward
                completed += 1

        if completed and goals and all(g.is_completed for g in goals):
            earned += ALL_GOALS_BONUS_XP

        # today_xp 只统计目标奖励；普通 XP 只计入总数
        raw_xp = amount if action == DailyGoalAction.xp_earned else 0

        return self.state.update(
            goals=tuple(goals),
            today_xp=current.today_xp + earned,
            total_xp=current.total_xp + earned + raw_xp,
            total_completed=current.total_completed + completed,
        )
