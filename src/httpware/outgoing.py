"""
待发送请求模块

OutgoingRequest 是中间件管道中流转的请求对象。每次发送都从一个空请求开始，
由各个中间件依次填充方法、URL、请求头和请求体，最后交给发送器。
"""

from __future__ import annotations

from typing import Any, Callable

from requests.auth import AuthBase
from requests.structures import CaseInsensitiveDict
from urllib3.util import Url

from httpware.context import Context

# 请求体提供者：每次调用返回一份全新的请求体，用于重试时重放
BodyProvider = Callable[[], Any]


class OutgoingRequest:
    """
    待发送的 HTTP 请求

    属性:
        method: HTTP 方法，空字符串表示未设置（发送时按 GET 处理）
        url: urllib3 Url 对象，所有部分为 None 表示未设置
        headers: 不区分大小写的请求头字典
        body: 请求体（bytes、str、类文件对象或 None）
        body_provider: 请求体提供者，可为 None
        auth: requests 认证对象，在发送器准备请求时应用
        context: 请求上下文
        request_id: 请求唯一标识，用于日志追踪
    """

    def __init__(
        self,
        method: str = "",
        url: Url | None = None,
        headers: dict[str, str] | None = None,
        body: Any = None,
        body_provider: BodyProvider | None = None,
        auth: AuthBase | None = None,
        context: Context | None = None,
        request_id: str = "",
    ):
        self.method = method
        self.url = url if url is not None else Url()
        self.headers = CaseInsensitiveDict(headers or {})
        self.body = body
        self.body_provider = body_provider
        self.auth = auth
        self.context = context if context is not None else Context.background()
        self.request_id = request_id

    def set_header(self, key: str, value: str) -> None:
        self.headers[key] = value

    def add_header(self, key: str, value: str) -> None:
        """追加请求头的值，已存在时以 ", " 合并"""
        existing = self.headers.get(key)
        self.headers[key] = f"{existing}, {value}" if existing else value

    def del_header(self, key: str) -> None:
        self.headers.pop(key, None)

    def __repr__(self) -> str:
        return f"<OutgoingRequest [{self.method or '-'}] {self.url.url or '-'}>"


def empty_request(context: Context | None = None, request_id: str = "") -> OutgoingRequest:
    """构建一个全新的空请求：方法、URL、请求头、请求体均未设置"""
    return OutgoingRequest(context=context, request_id=request_id)
