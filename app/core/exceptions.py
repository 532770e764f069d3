"""
错误分类

- ValidationError: 参数缺失或格式错误（400）
- Unauthorized: 未携带凭证（401）
- AuthenticationFailed: 凭证无效或过期（401）
- UpstreamFetchFailure: 内容库 / 身份提供方不可用（500）
- TransientFailure: 上游超时，可重试（503）

读路径（解析、链接改写、关联链接校验）不向外抛错，只做降级；
失效接口把错误原样映射为 HTTP 状态码返回给运维调用方
"""

from typing import Any, Dict, Optional


class SiteCoreError(Exception):
    """核心模块错误基类"""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(SiteCoreError):
    """请求参数缺失或非法"""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class Unauthorized(SiteCoreError):
    """缺少凭证（与凭证校验失败区分）"""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: Optional[str] = None):
        super().__init__(message, details)


class AuthenticationFailed(SiteCoreError):
    """凭证校验失败，details 只携带上游错误描述，不包含令牌本身"""

    status_code = 401
    error_code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Authentication failed", details: Optional[str] = None):
        super().__init__(message, details)


class UpstreamFetchFailure(SiteCoreError):
    """上游（内容库、身份提供方、缓存）请求失败"""

    status_code = 500
    error_code = "UPSTREAM_FETCH_FAILURE"
    retryable = True


class TransientFailure(UpstreamFetchFailure):
    """上游超时，调用方可重试"""

    status_code = 503
    error_code = "TRANSIENT_FAILURE"
