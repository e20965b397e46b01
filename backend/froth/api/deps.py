"""
FastAPI 依赖注入模块

应用外壳（FrothApp）在 lifespan 中创建并挂在 app.state 上，
路由通过这里的依赖取得门面，不直接接触服务商客户端。
"""
from typing import Annotated

from fastapi import Depends, Request

from froth.api.errors import AppError
from froth.services.daily_goals import DailyGoalTracker
from froth.services.entitlements import EntitlementFacade
from froth.services.identity import IdentityFacade
from froth.shell import FrothApp


def get_shell(request: Request) -> FrothApp:
    shell = getattr(request.app.state, "froth", None)
    if shell is None:
        raise AppError(code=503000, message="Application is not ready", status_code=503)
    return shell


ShellDep = Annotated[FrothApp, Depends(get_shell)]


def get_identity(shell: ShellDep) -> IdentityFacade:
    return shell.identity


def get_store(shell: ShellDep) -> EntitlementFacade:
    return shell.store


def get_daily_goals(shell: ShellDep) -> DailyGoalTracker:
    return shell.daily_goals


# 类型别名，简化路由写法
IdentityDep = Annotated[IdentityFacade, Depends(get_identity)]
StoreDep = Annotated[EntitlementFacade, Depends(get_store)]
DailyGoalsDep = Annotated[DailyGoalTracker, Depends(get_daily_goals)]
