"""
发送器模块

发送器位于中间件管道的最内层，负责把 OutgoingRequest 真正发送到网络上。

- BaseSender: 发送器基类，测试替身、带监控的包装器等都可以实现它
- SessionSender: 基于 requests.Session 的默认发送器，其传输适配器（session.adapters）
  可以被替换，重试能力就是通过包装这些适配器实现的
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

import requests
from requests.adapters import HTTPAdapter

from httpware.constants import DEFAULT_POOL_CONFIG, HTTP_METHOD_GET, MIN_TIMEOUT
from httpware.context import Context
from httpware.exceptions import DeadlineExceededError
from httpware.outgoing import OutgoingRequest
from httpware.utils import sanitize_headers, sanitize_url

logger = logging.getLogger(__name__)

# 当前线程正在发送的请求，供传输层装饰器（如重试适配器）读取上下文和请求体提供者
_active_request: ContextVar[OutgoingRequest | None] = ContextVar("httpware_active_request", default=None)

Timeout = float | tuple[float | None, float | None] | None


def active_request() -> OutgoingRequest | None:
    """返回当前线程正在发送的请求，不在发送过程中时返回 None"""
    return _active_request.get()


@contextmanager
def activate(request: OutgoingRequest) -> Iterator[OutgoingRequest]:
    """在 with 块内把 request 标记为正在发送的请求"""
    token = _active_request.set(request)
    try:
        yield request
    finally:
        _active_request.reset(token)


def clip_timeout(timeout: Timeout, context: Context) -> Timeout:
    """
    用上下文的剩余时间裁剪超时时间

    参数:
        timeout: None、秒数或 (connect, read) 元组
        context: 请求上下文

    返回:
        与 timeout 同形态的超时时间，各部分不超过上下文剩余时间
    """
    remaining = context.remaining()
    if remaining is None:
        return timeout
    remaining = max(remaining, MIN_TIMEOUT)
    if isinstance(timeout, tuple):
        return tuple(remaining if part is None else min(part, remaining) for part in timeout)
    if timeout is None:
        return remaining
    return min(timeout, remaining)


class BaseSender(ABC):
    """发送器基类，send 必须可以被多个线程并发调用"""

    @abstractmethod
    def send(self, request: OutgoingRequest) -> requests.Response:
        """发送请求并返回响应，失败时抛出异常"""

    def close(self) -> None:
        """释放发送器持有的资源"""


class SessionSender(BaseSender):
    """
    基于 requests.Session 的发送器

    参数:
        session: 复用的 requests.Session，None 时创建新的会话并挂载连接池适配器
        timeout: 超时时间（秒），None 表示不超时；实际超时不超过上下文剩余时间
        pool_config: 新建会话时 HTTPAdapter 的连接池配置
        stream: 是否以流式方式接收响应体
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float | None = None,
        pool_config: dict[str, Any] | None = None,
        stream: bool = False,
    ):
        self.timeout = timeout
        self.stream = stream
        self.session = session if session is not None else self._create_session(pool_config)

    def _create_session(self, pool_config: dict[str, Any] | None) -> requests.Session:
        """
        创建新的 requests.Session，并为 HTTP 和 HTTPS 协议挂载连接池适配器
        """
        session = requests.Session()
        adapter = HTTPAdapter(**{**DEFAULT_POOL_CONFIG, **(pool_config or {})})
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def send(self, request: OutgoingRequest) -> requests.Response:
        """
        发送请求

        执行步骤:
            1. 上下文已结束时直接抛出上下文异常，不访问网络
            2. 把 OutgoingRequest 转换为 requests.PreparedRequest
            3. 以上下文剩余时间裁剪超时时间后发送
            4. 传输超时且上下文已过截止时间时，转换为 DeadlineExceededError

        异常:
            CancelledError / DeadlineExceededError: 上下文已结束
            requests.exceptions.RequestException: 传输层错误，原样抛出
        """
        context = request.context
        context.raise_if_done()

        prepared = self.prepare(request)
        request_id = request.request_id
        logger.info(f"[{request_id}] Starting {prepared.method} request to {sanitize_url(prepared.url or '')}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[{request_id}] Request headers: {sanitize_headers(prepared.headers)}")

        timeout = clip_timeout(self.timeout, context)
        try:
            with activate(request):
                response = self.session.send(prepared, timeout=timeout, stream=self.stream)
        except requests.exceptions.Timeout as e:
            # 超时时间被截止时间裁剪过时，传输超时就是截止时间到期
            if context.error() is not None or (context.deadline is not None and timeout != self.timeout):
                raise DeadlineExceededError() from e
            raise

        logger.info(f"[{request_id}] Received {response.status_code} response")
        return response

    def prepare(self, request: OutgoingRequest) -> requests.PreparedRequest:
        """把 OutgoingRequest 转换为 requests.PreparedRequest，合并会话级请求头、cookies 和认证"""
        body = request.body
        if body is None and request.body_provider is not None:
            body = request.body_provider()

        raw_request = requests.Request(
            method=request.method or HTTP_METHOD_GET,
            url=request.url.url,
            headers=dict(request.headers),
            data=body,
            auth=request.auth,
        )
        return self.session.prepare_request(raw_request)

    def close(self) -> None:
        self.session.close()
        logger.info("Session closed")
