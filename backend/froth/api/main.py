"""
API 路由聚合模块

路由模块说明：
- auth: 身份相关（注册、登录、登出、邮箱验证）
- store: 商店相关（商品、购买、恢复购买、权益）
- app_state: 应用生命周期相关（回到前台、每日目标）
- utils: 工具相关（健康检查）
"""
from fastapi import APIRouter

from froth.api.routes import app_state, auth, store, utils

api_router = APIRouter()

api_router.include_router(auth.router)  # /auth/*
api_router.include_router(store.router)  # /store/*
api_router.include_router(app_state.router)  # /app/*
api_router.include_router(utils.router)  # /utils/*
