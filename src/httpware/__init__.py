"""
httpware HTTP 客户端中间件工具包

围绕可组合的中间件管道构建的同步 HTTP 客户端

主要组件:
    - Client: 持有配置和发送器，创建请求
    - Request: 累积单次请求的中间件并发送
    - Response: 传输层响应与管道异常的包装
    - Chain / Middleware: 中间件链与中间件基类
    - Context: 取消、截止时间和请求级数据
    - middlewares: 内置中间件（headers、url、body、responsebody、auth、errors、retry、cancel）

使用示例:
    >>> from httpware import Client
    >>> from httpware.middlewares import errors, retry, url
    >>>
    >>> client = Client(product_info=("myapp", "1.0"), post_middlewares=[errors.translate()])
    >>> resp = (
    ...     client.request()
    ...     .get()
    ...     .url("https://api.example.com/users")
    ...     .use(url.param("page", "1"), retry.set_classifier(retry.on_500_plus_classifier))
    ...     .send()
    ... )
    >>> users = resp.json()
"""

# 核心组件
from httpware.chain import Chain, Handler, Middleware, MiddlewareFunc, RequestProcessor, ResponseProcessor
from httpware.client import Client
from httpware.context import Context, ContextKey
from httpware.options import UserAgent
from httpware.outgoing import OutgoingRequest, empty_request
from httpware.request import Request
from httpware.response import Response
from httpware.sender import BaseSender, SessionSender

# 异常类
from httpware.exceptions import (
    CancelledError,
    ContextError,
    ContextValueError,
    DeadlineExceededError,
    HeaderValueError,
    HTTPError,
    HTTPWareError,
    ValidationError,
)

# 常量
from httpware.constants import LIBRARY_VERSION

# 工具
from httpware.utils import Ref

__version__ = LIBRARY_VERSION

__all__ = [
    # 核心组件
    "Chain",
    "Client",
    "Context",
    "ContextKey",
    "Handler",
    "Middleware",
    "MiddlewareFunc",
    "OutgoingRequest",
    "Request",
    "RequestProcessor",
    "Response",
    "ResponseProcessor",
    "UserAgent",
    "empty_request",
    # 发送器
    "BaseSender",
    "SessionSender",
    # 异常类
    "CancelledError",
    "ContextError",
    "ContextValueError",
    "DeadlineExceededError",
    "HeaderValueError",
    "HTTPError",
    "HTTPWareError",
    "ValidationError",
    # 工具
    "Ref",
]
