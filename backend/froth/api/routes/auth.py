"""
身份路由模块

注册、登录、登出、验证邮件以及身份状态查询。
所有服务商错误由 main.py 中的异常处理器转换为统一响应。
"""
from __future__ import annotations

from fastapi import APIRouter

from froth.api.deps import IdentityDep
from froth.api.schemas import (
    ApiEnvelope,
    EmailExistsData,
    EmailExistsRequest,
    IdentityStateData,
    LoginRequest,
    RegisterRequest,
    UserPublic,
    VerificationStatusData,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ApiEnvelope)
async def register(identity: IdentityDep, body: RegisterRequest) -> ApiEnvelope:
    """
    注册接口

    创建账户并发送一次验证邮件，返回的用户 email_verified 为 False。

    请求路径: POST /api/v1/auth/register
    """
    user = await identity.register(body.email, body.password, body.username)
    return ApiEnvelope(data=UserPublic.from_user(user))


@router.post("/login", response_model=ApiEnvelope)
async def login(identity: IdentityDep, body: LoginRequest) -> ApiEnvelope:
    """
    登录接口

    邮箱未验证时返回 403（code=401101），且不会保留登录状态。

    请求路径: POST /api/v1/auth/login
    """
    user = await identity.authenticate(body.email, body.password)
    return ApiEnvelope(data=UserPublic.from_user(user))


@router.post("/logout", response_model=ApiEnvelope)
async def logout(identity: IdentityDep) -> ApiEnvelope:
    identity.sign_out()
    return ApiEnvelope(data=IdentityStateData.from_state(identity.state.value))


@router.post("/verification/resend", response_model=ApiEnvelope)
async def resend_verification(identity: IdentityDep) -> ApiEnvelope:
    await identity.resend_verification()
    return ApiEnvelope(data=IdentityStateData.from_state(identity.state.value))


@router.post("/verification/refresh", response_model=ApiEnvelope)
async def refresh_verification(identity: IdentityDep) -> ApiEnvelope:
    """
    重新读取邮箱验证状态

    用户在邮件中点击验证链接后，客户端调用此接口刷新状态。
    """
    verified = await identity.refresh_verification_status()
    return ApiEnvelope(data=VerificationStatusData(is_email_verified=verified))


@router.get("/state", response_model=ApiEnvelope)
def state(identity: IdentityDep) -> ApiEnvelope:
    return ApiEnvelope(data=IdentityStateData.from_state(identity.state.value))


@router.post("/email-exists", response_model=ApiEnvelope)
async def email_exists(identity: IdentityDep, body: EmailExistsRequest) -> ApiEnvelope:
    exists = await identity.email_exists(body.email)
    return ApiEnvelope(data=EmailExistsData(exists=exists))
