"""
运维路由

部署的就绪检查使用；只确认应用外壳已挂载，不访问认证 / 订阅服务商。
"""
from fastapi import APIRouter

from froth.api.deps import ShellDep

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
async def health_check(_: ShellDep) -> bool:
    """
    就绪检查

    外壳尚未在 lifespan 中挂载时由依赖返回 503。
    """
    return True
