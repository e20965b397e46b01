"""
应用生命周期路由模块

- POST /app/active: 应用回到前台（重新检查每日目标并记录一次打开）
- GET /app/daily-goals: 当前每日目标
- POST /app/daily-goals/events: 记录用户行为，推进匹配的目标
"""
from __future__ import annotations

from fastapi import APIRouter

from froth.api.deps import DailyGoalsDep, ShellDep
from froth.api.schemas import ApiEnvelope, DailyGoalEventRequest, DailyGoalsData

router = APIRouter(prefix="/app", tags=["app"])


@router.post("/active", response_model=ApiEnvelope)
async def became_active(shell: ShellDep) -> ApiEnvelope:
    return ApiEnvelope(data=DailyGoalsData.from_state(shell.became_active()))


@router.get("/daily-goals", response_model=ApiEnvelope)
async def daily_goals(tracker: DailyGoalsDep) -> ApiEnvelope:
    tracker.check_and_reset()
    return ApiEnvelope(data=DailyGoalsData.from_state(tracker.state.value))


@router.post("/daily-goals/events", response_model=ApiEnvelope)
async def record_event(tracker: DailyGoalsDep, body: DailyGoalEventRequest) -> ApiEnvelope:
    tracker.check_and_reset()
    state = tracker.record(body.action, body.amount)
    return ApiEnvelope(data=DailyGoalsData.from_state(state))
