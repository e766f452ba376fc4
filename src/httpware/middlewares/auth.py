"""认证中间件"""

from __future__ import annotations

from requests.auth import AuthBase, HTTPBasicAuth

from httpware.chain import Middleware, RequestProcessor
from httpware.exceptions import ValidationError
from httpware.outgoing import OutgoingRequest


def basic(username: str, password: str) -> Middleware:
    """设置 HTTP Basic 认证的 Authorization 请求头"""
    credentials = HTTPBasicAuth(username, password)

    def process(request: OutgoingRequest) -> None:
        # HTTPBasicAuth 只写入 request.headers，可以直接作用于 OutgoingRequest
        credentials(request)

    return RequestProcessor(process)


def use(auth: AuthBase) -> Middleware:
    """
    为请求附加任意 requests 认证对象

    认证在发送器准备请求时应用，因此可以使用依赖完整请求（URL、请求体）的认证方式
    """
    if not isinstance(auth, AuthBase):
        raise ValidationError(f"auth must be a requests AuthBase instance, got {type(auth).__name__}")

    def process(request: OutgoingRequest) -> None:
        request.auth = auth

    return RequestProcessor(process)
