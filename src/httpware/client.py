"""HTTP 客户端核心模块

Client 持有配置和发送器，并负责创建 Request。

- 前置中间件（middlewares，构建为 pre_chain）: 对每个请求生效，位于最外层，先于请求自身的中间件执行
- 后置中间件（post_middlewares，构建为 post_chain）: 对每个请求生效，位于最内层，在请求自身的中间件之后、发送器之前执行

配置方式与常见的客户端类一致：类属性提供默认值，构造参数覆盖类属性。

使用示例:
    >>> class GitHubClient(Client):
    ...     product_info = ("myapp", "1.0")
    ...     middlewares = [url.base_url("https://api.github.com")]
    ...     post_middlewares = [errors.translate()]
    >>> with GitHubClient(timeout=10) as client:
    ...     data = client.request().url("/repos/psf/requests").send().json()
"""

from __future__ import annotations

import logging
from typing import Callable

import requests

from httpware.chain import Chain, Handler, Middleware
from httpware.constants import DEFAULT_TIMEOUT
from httpware.context import Context
from httpware.exceptions import ValidationError
from httpware.middlewares import headers, retry
from httpware.options import UserAgent
from httpware.outgoing import OutgoingRequest
from httpware.request import Request
from httpware.response import Response
from httpware.sender import BaseSender, SessionSender

logger = logging.getLogger(__name__)


class Client:
    """
    HTTP 客户端

    类属性:
        http_client: 发送器（BaseSender）或 requests.Session，None 时创建默认发送器
        default_timeout: 默认发送器的超时时间（秒），None 表示不超时
        middlewares: 前置中间件列表
        post_middlewares: 后置中间件列表
        product_info: 产品信息，UserAgent 或 (product, version)，非空时设置 User-Agent 请求头
        disable_retry: 是否禁用传输层重试包装
        stream: 默认发送器是否以流式方式接收响应体

    实例属性 pre_chain、post_chain 是由 middlewares、post_middlewares 构建的中间件链
    """

    # ========== 发送器配置 ==========
    # 发送器或 requests.Session，None 表示使用默认的 SessionSender
    http_client: BaseSender | requests.Session | None = None

    # 默认超时时间（秒），只在创建默认发送器时生效
    default_timeout: float | None = DEFAULT_TIMEOUT

    # 为 True 时响应体按需读取，适合配合 responsebody.writer 下载大文件
    stream: bool = False

    # ========== 中间件配置 ==========
    middlewares: list[Middleware] = []
    post_middlewares: list[Middleware] = []

    # ========== 其他配置 ==========
    product_info: UserAgent | tuple[str, str] | None = None

    # 为 True 时不包装传输适配器，请求上配置的重试分类器不会生效
    disable_retry: bool = False

    def __init__(
        self,
        http_client: BaseSender | requests.Session | None = None,
        timeout: float | None = None,
        middlewares: list[Middleware] | None = None,
        post_middlewares: list[Middleware] | None = None,
        product_info: UserAgent | tuple[str, str] | None = None,
        disable_retry: bool | None = None,
        stream: bool | None = None,
    ):
        """
        初始化客户端

        参数:
            http_client: 发送器或 requests.Session（覆盖类属性）
            timeout: 默认发送器的超时时间（秒），自定义发送器时忽略
            middlewares: 前置中间件列表（覆盖类属性）
            post_middlewares: 后置中间件列表（覆盖类属性）
            product_info: 产品信息（覆盖类属性）
            disable_retry: 是否禁用重试（覆盖类属性）
            stream: 是否流式接收响应体（覆盖类属性），自定义发送器时忽略

        执行步骤:
            1. 合并构造参数和类属性
            2. 解析发送器，必要时为其传输适配器加上重试能力
            3. 创建前置和后置中间件链，产品信息非空时追加 User-Agent 中间件

        异常:
            ValidationError: 发送器类型、中间件或产品信息无效
        """
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.disable_retry = disable_retry if disable_retry is not None else self.disable_retry
        self.stream = stream if stream is not None else self.stream
        self.user_agent = UserAgent.coerce(product_info if product_info is not None else self.product_info)

        self.sender = self._resolve_sender(http_client if http_client is not None else self.http_client)
        if not self.disable_retry and isinstance(self.sender, SessionSender):
            retry.enable(self.sender.session)

        self.pre_chain = Chain(*(middlewares if middlewares is not None else self.middlewares))
        if not self.user_agent.is_empty():
            self.pre_chain.use(headers.set("User-Agent", str(self.user_agent)))
        self.post_chain = Chain(*(post_middlewares if post_middlewares is not None else self.post_middlewares))

        logger.debug(
            f"Client created: sender={type(self.sender).__name__}, timeout={self.timeout}, "
            f"retry={'disabled' if self.disable_retry else 'enabled'}"
        )

    def _resolve_sender(self, http_client: BaseSender | requests.Session | None) -> BaseSender:
        if http_client is None:
            return SessionSender(timeout=self.timeout, stream=self.stream)
        if isinstance(http_client, BaseSender):
            return http_client
        if isinstance(http_client, requests.Session):
            return SessionSender(session=http_client, stream=self.stream)
        raise ValidationError(
            f"http_client must be a BaseSender or requests.Session, got {type(http_client).__name__}"
        )

    # ========== 中间件注册 ==========

    def use(self, *middlewares: Middleware) -> Client:
        """追加前置中间件"""
        self.pre_chain.use(*middlewares)
        return self

    def use_func(self, fn: Callable[[Handler], Handler]) -> Client:
        self.pre_chain.use_func(fn)
        return self

    def use_post(self, *middlewares: Middleware) -> Client:
        """追加后置中间件"""
        self.post_chain.use(*middlewares)
        return self

    def use_post_func(self, fn: Callable[[Handler], Handler]) -> Client:
        self.post_chain.use_func(fn)
        return self

    # ========== 请求 ==========

    def request(self) -> Request:
        """创建新的请求，其中间件链以前置中间件链为父链"""
        return Request(self)

    def do(self, context: Context | None, *middlewares: Middleware) -> Response:
        """
        便捷方法，等价于 request().with_context(context).use(*middlewares).send()

        使用示例:
            >>> resp = client.do(ctx, headers.method("GET"), url.url("https://example.com"))
        """
        return self.request().with_context(context).use(*middlewares).send()

    def send_request(self, request: OutgoingRequest) -> requests.Response:
        """管道最内层的处理器，把请求交给发送器"""
        return self.sender.send(request)

    # ========== 生命周期 ==========

    def close(self) -> None:
        """关闭发送器，释放连接池资源"""
        self.sender.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
