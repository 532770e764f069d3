"""
安全模块

失效接口的 Bearer 令牌解析与身份校验：
- RemoteIdentityProvider: 把令牌交给身份提供方换取用户（GET /auth/v1/user）
- JWTIdentityProvider: 配置了签名密钥时本地校验 JWT

任何日志和错误信息中都不包含令牌本身
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationFailed,
    TransientFailure,
    Unauthorized,
    UpstreamFetchFailure,
)

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Principal:
    """令牌对应的调用方"""

    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def parse_bearer_token(authorization: Optional[str]) -> str:
    """
    解析 Authorization header

    缺失或格式不是 "Bearer <token>" 时抛出 Unauthorized
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized()

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        raise Unauthorized()

    return token


class IdentityProvider(Protocol):
    """身份校验契约"""

    async def verify(self, token: str) -> Principal: ...


def _error_detail(payload: Any) -> Optional[str]:
    """从身份提供方的错误响应中取出描述"""
    if not isinstance(payload, dict):
        return None
    for key in ("msg", "error_description", "message", "error"):
        value = payload.get(key)
        if value:
            return str(value)
    return None


class RemoteIdentityProvider:
    """通过身份提供方接口校验令牌"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.IDENTITY_PROVIDER_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.IDENTITY_PROVIDER_API_KEY
        self.timeout = timeout or settings.IDENTITY_TIMEOUT_SECONDS
        self._transport = transport

    async def verify(self, token: str) -> Principal:
        headers = {"Authorization": f"{BEARER_PREFIX}{token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("identity_provider_timeout", timeout=self.timeout)
            raise TransientFailure("Identity provider timed out", details=str(e) or "timeout") from e
        except httpx.HTTPError as e:
            logger.error("identity_provider_unreachable", error=str(e))
            raise UpstreamFetchFailure("Identity provider unreachable", details=str(e)) from e

        try:
            payload: Dict[str, Any] = response.json()
        except ValueError:
            payload = {}

        if response.status_code in (400, 401, 403, 404):
            raise AuthenticationFailed(details=_error_detail(payload) or f"status {response.status_code}")

        if response.status_code >= 500:
            raise UpstreamFetchFailure(
                "Identity provider error",
                details=_error_detail(payload) or f"status {response.status_code}",
            )

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthenticationFailed(details="no user returned for token")

        return Principal(id=str(user_id), email=payload.get("email"), role=payload.get("role"))


class JWTIdentityProvider:
    """本地校验身份提供方签发的 JWT"""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    async def verify(self, token: str) -> Principal:
        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except ExpiredSignatureError as e:
            raise AuthenticationFailed(details="token has expired") from e
        except JWTError as e:
            raise AuthenticationFailed(details=str(e)) from e

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationFailed(details="token has no subject")

        return Principal(id=str(user_id), email=payload.get("email"), role=payload.get("role"))


def get_identity_provider() -> IdentityProvider:
    """按配置选择身份校验方式"""
    if settings.IDENTITY_JWT_SECRET:
        return JWTIdentityProvider(
            secret=settings.IDENTITY_JWT_SECRET,
            algorithm=settings.IDENTITY_JWT_ALGORITHM,
            audience=settings.IDENTITY_JWT_AUDIENCE,
        )
    return RemoteIdentityProvider()
