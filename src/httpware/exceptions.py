"""
HTTP 客户端异常模块

定义中间件管道相关的异常类。传输层异常（连接失败、超时等）直接使用
requests.exceptions 中的异常，不做包装。
"""

from __future__ import annotations

import requests


class HTTPWareError(Exception):
    """
    httpware 异常基类

    所有自定义异常的基类，用于统一捕获和处理客户端相关错误
    """


class ValidationError(HTTPWareError):
    """
    输入验证异常

    当客户端配置、中间件参数等输入数据验证失败时抛出此异常
    """


class HTTPError(HTTPWareError):
    """
    HTTP 错误响应异常

    由 errors 中间件在响应状态码 >= 400 时抛出

    参数:
        status_code: HTTP 状态码
        method: 请求方法
        request_url: 请求 URL
        name: 状态描述，如 "404 Not Found"
        body: 响应体字节（可能为空）
        response: 原始的 requests.Response 对象（可选）
    """

    def __init__(
        self,
        status_code: int,
        method: str = "",
        request_url: str = "",
        name: str = "",
        body: bytes = b"",
        response: requests.Response | None = None,
    ):
        self.status_code = status_code
        self.method = method
        self.request_url = request_url
        self.name = name or str(status_code)
        self.body = body
        self.response = response
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"HTTP error {self.name} on {self.method} {self.request_url}"


class ContextError(HTTPWareError):
    """上下文已结束（取消或超过截止时间）"""


class CancelledError(ContextError):
    """上下文被取消"""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceededError(ContextError):
    """上下文超过截止时间"""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class ContextValueError(HTTPWareError):
    """上下文中的值格式不受支持"""


class HeaderValueError(HTTPWareError):
    """响应头的值无法转换为目标类型"""
