"""
Firebase Authentication REST API 集成模块

封装邮箱/密码认证相关的 API，包括：
- 注册（accounts:signUp）
- 登录（accounts:signInWithPassword）
- 发送验证邮件（accounts:sendOobCode, requestType=VERIFY_EMAIL）
- 重新加载用户（accounts:lookup）
- 更新显示名（accounts:update）
- 查询邮箱是否已注册（accounts:createAuthUri）
- 刷新 ID Token（securetoken token 接口）

客户端持有当前登录会话，并在会话变化（登录、登出、令牌失效被强制登出）时
通知通过 add_state_listener 注册的监听器。

文档: https://firebase.google.com/docs/reference/rest/auth
"""
from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx
import jwt

from froth.api.errors import ProviderAuthError, configuration_error
from froth.core.config import settings
from froth.models import AuthSession, AuthUser, utc_now

logger = logging.getLogger(__name__)

AuthStateListener = Callable[[AuthUser | None], None]

# 令牌在过期前多久主动刷新
_TOKEN_REFRESH_MARGIN = timedelta(minutes=5)

# 服务商错误标识 -> 展示文案
_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "This email is already registered. Please use a different email.",
    "WEAK_PASSWORD": "Password is too weak. Please use a stronger password.",
    "INVALID_EMAIL": "Invalid email address. Please check and try again.",
    "MISSING_EMAIL": "Invalid email address. Please check and try again.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many requests. Please wait a moment and try again.",
    "EMAIL_NOT_FOUND": "Incorrect email or password.",
    "INVALID_PASSWORD": "Incorrect email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "USER_DISABLED": "This account has been disabled.",
}
_NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
_DEFAULT_ERROR_MESSAGE = "An error occurred. Please try again."

# 出现这些错误时，当前会话已经不可用，需要强制登出
_SESSION_REVOKED_CODES = frozenset(
    {"TOKEN_EXPIRED", "USER_DISABLED", "USER_NOT_FOUND", "INVALID_REFRESH_TOKEN", "INVALID_ID_TOKEN"}
)


def auth_error(provider_code: str | None) -> ProviderAuthError:
    """
    将服务商错误标识映射为 ProviderAuthError

    Firebase 的错误消息形如 "WEAK_PASSWORD : Password should be at least 6 characters"，
    只取冒号前的标识部分。
    """
    code = (provider_code or "").split(":")[0].strip() or None
    message = _ERROR_MESSAGES.get(code or "", _DEFAULT_ERROR_MESSAGE)
    return ProviderAuthError(message=message, provider_code=code)


def _token_claims(id_token: str) -> dict[str, Any]:
    # Claims only; the provider checks the signature.
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.warning(f"Failed to decode ID token claims: {e}")
        return {}


class FirebaseAuthClient:
    """
    Firebase Authentication 客户端

    使用示例：
        client = FirebaseAuthClient(api_key="...")
        handle = client.add_state_listener(lambda user: print(user))
        user = await client.sign_in("a@b.com", "pw")
        client.remove_state_listener(handle)
        await client.aclose()
    """

    def __init__(
        self,
        api_key: str,
        *,
        auth_base_url: str = "https://identitytoolkit.googleapis.com/v1",
        token_base_url: str = "https://securetoken.googleapis.com/v1",
        continue_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._auth_base_url = auth_base_url.rstrip("/")
        self._token_base_url = token_base_url.rstrip("/")
        self._continue_url = continue_url
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._session: AuthSession | None = None
        self._listeners: dict[int, AuthStateListener] = {}
        self._handles = itertools.count(1)
        logger.info("Firebase auth client initialized")

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> FirebaseAuthClient:
        return cls(
            settings.FIREBASE_API_KEY,
            auth_base_url=settings.FIREBASE_AUTH_BASE_URL,
            token_base_url=settings.FIREBASE_TOKEN_BASE_URL,
            continue_url=settings.VERIFICATION_CONTINUE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def current_user(self) -> AuthUser | None:
        return self._session.user if self._session else None

    # ------------------------------------------------------------
    # 认证状态监听
    # ------------------------------------------------------------

    def add_state_listener(self, listener: AuthStateListener) -> int:
        """注册认证状态监听器，返回用于注销的句柄"""
        handle = next(self._handles)
        self._listeners[handle] = listener
        return handle

    def remove_state_listener(self, handle: int) -> None:
        self._listeners.pop(handle, None)

    def _notify(self) -> None:
        user = self.current_user
        for listener in list(self._listeners.values()):
            try:
                listener(user)
            except Exception:
                logger.exception("Auth state listener failed")

    def _set_session(self, session: AuthSession | None) -> None:
        previous = self.current_user
        self._session = session
        if previous != self.current_user:
            self._notify()

    # ------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------

    async def _post(
        self, url: str, payload: dict[str, Any], *, form: bool = False
    ) -> dict[str, Any]:
        if not self._api_key:
            raise configuration_error("FIREBASE_API_KEY")
        body = {"data": payload} if form else {"json": payload}
        try:
            r = await self._http.post(url, params={"key": self._api_key}, **body)
        except httpx.HTTPError as e:
            logger.error(f"Firebase auth request failed: {e}")
            raise ProviderAuthError(message=_NETWORK_ERROR_MESSAGE, provider_code="NETWORK_ERROR")

        try:
            data = r.json()
        except ValueError:
            data = {}

        if r.status_code != 200:
            error = data.get("error") if isinstance(data, dict) else None
            provider_code = error.get("message") if isinstance(error, dict) else None
            logger.error(f"Firebase auth error: {r.status_code} {provider_code}")
            raise auth_error(provider_code)
        return data if isinstance(data, dict) else {}

    async def _accounts(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"{self._auth_base_url}/accounts:{method}", payload)

    def _session_from_response(self, data: dict[str, Any]) -> AuthSession:
        id_token = str(data.get("idToken") or "")
        claims = _token_claims(id_token)
        user = AuthUser(
            uid=str(data.get("localId") or claims.get("user_id") or claims.get("sub") or ""),
            email=data.get("email") or claims.get("email"),
            email_verified=bool(claims.get("email_verified", False)),
            display_name=data.get("displayName") or claims.get("name"),
        )
        try:
            expires_in = int(data.get("expiresIn") or 3600)
        except (TypeError, ValueError):
            expires_in = 3600
        return AuthSession(
            user=user,
            id_token=id_token,
            refresh_token=str(data.get("refreshToken") or ""),
            expires_at=utc_now() + timedelta(seconds=expires_in),
        )

    def _require_session(self) -> AuthSession:
        if self._session is None:
            raise ProviderAuthError(message="No user signed in", provider_code="NO_PRINCIPAL")
        return self._session

    def _handle_revoked(self, exc: ProviderAuthError) -> None:
        if exc.provider_code in _SESSION_REVOKED_CODES:
            logger.warning(f"Session revoked by provider ({exc.provider_code}), signing out")
            self.sign_out()

    # ------------------------------------------------------------
    # 账户操作
    # ------------------------------------------------------------

    async def create_user(self, email: str, password: str) -> AuthUser:
        data = await self._accounts(
            "signUp", {"email": email, "password": password, "returnSecureToken": True}
        )
        session = self._session_from_response(data)
        self._set_session(session)
        logger.info(f"Account created: {session.user.uid}")
        return session.user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        data = await self._accounts(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        session = self._session_from_response(data)
        self._set_session(session)
        return session.user

    def sign_out(self) -> None:
        self._set_session(None)

    async def get_id_token(self, *, force_refresh: bool = False) -> str:
        """
        获取当前会话的 ID Token

        令牌即将过期或 force_refresh 时先刷新；服务商拒绝刷新（令牌被撤销、
        账户被禁用等）时强制登出并抛出 ProviderAuthError。
        """
        session = self._require_session()
        if not force_refresh and session.expires_at - utc_now() > _TOKEN_REFRESH_MARGIN:
            return session.id_token

        try:
            data = await self._post(
                f"{self._token_base_url}/token",
                {"grant_type": "refresh_token", "refresh_token": session.refresh_token},
                form=True,
            )
        except ProviderAuthError as e:
            self._handle_revoked(e)
            raise

        refreshed = self._session_from_response(
            {
                "idToken": data.get("id_token"),
                "refreshToken": data.get("refresh_token") or session.refresh_token,
                "expiresIn": data.get("expires_in"),
                "localId": data.get("user_id") or session.user.uid,
                "email": session.user.email,
                "displayName": session.user.display_name,
            }
        )
        self._set_session(refreshed)
        return refreshed.id_token

    async def send_email_verification(self) -> None:
        id_token = await self.get_id_token()
        payload: dict[str, Any] = {"requestType": "VERIFY_EMAIL", "idToken": id_token}
        if self._continue_url:
            payload["continueUrl"] = self._continue_url
        await self._accounts("sendOobCode", payload)
        logger.info(f"Verification email requested for {self._require_session().user.uid}")

    async def update_profile(self, *, display_name: str) -> AuthUser:
        id_token = await self.get_id_token()
        data = await self._accounts(
            "update",
            {"idToken": id_token, "displayName": display_name, "returnSecureToken": False},
        )
        session = self._require_session()
        user = AuthUser(
            uid=session.user.uid,
            email=session.user.email,
            email_verified=bool(data.get("emailVerified", session.user.email_verified)),
            display_name=data.get("displayName") or display_name,
        )
        self._set_session(
            AuthSession(
                user=user,
                id_token=session.id_token,
                refresh_token=session.refresh_token,
                expires_at=session.expires_at,
            )
        )
        return user

    async def reload(self) -> AuthUser:
        """
        从服务商重新加载当前用户（主要用于读取最新的邮箱验证状态）
        """
        id_token = await self.get_id_token()
        try:
            data = await self._accounts("lookup", {"idToken": id_token})
        except ProviderAuthError as e:
            self._handle_revoked(e)
            raise

        users = data.get("users")
        if not isinstance(users, list) or not users or not isinstance(users[0], dict):
            self.sign_out()
            raise auth_error("USER_NOT_FOUND")

        info = users[0]
        session = self._require_session()
        user = AuthUser(
            uid=str(info.get("localId") or session.user.uid),
            email=info.get("email") or session.user.email,
            email_verified=bool(info.get("emailVerified", False)),
            display_name=info.get("displayName") or session.user.display_name,
        )
        self._set_session(
            AuthSession(
                user=user,
                id_token=session.id_token,
                refresh_token=session.refresh_token,
                expires_at=session.expires_at,
            )
        )
        return user

    async def email_exists(self, email: str) -> bool:
        data = await self._accounts(
            "createAuthUri",
            {"identifier": email, "continueUri": self._continue_url or "http://localhost"},
        )
        return bool(data.get("registered", False))

    async def aclose(self) -> None:
        await self._http.aclose()
