"""
请求模块

Request 为单次交换累积中间件并触发发送。中间件的执行顺序（由外到内）:
    1. Client 的前置中间件（按加入顺序）
    2. Request 自身的中间件（按加入顺序）
    3. Client 的后置中间件（按加入顺序）
    4. 发送器
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from httpware.chain import Handler, Middleware
from httpware.constants import (
    HTTP_METHOD_CONNECT,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_GET,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_OPTIONS,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
    HTTP_METHOD_TRACE,
)
from httpware.context import Context
from httpware.middlewares import body, headers, url
from httpware.outgoing import empty_request
from httpware.response import Response
from httpware.utils import generate_request_id

if TYPE_CHECKING:
    from httpware.client import Client

logger = logging.getLogger(__name__)


class Request:
    """
    单次请求的构建器

    属性:
        client: 所属的 Client
        middlewares: 以 Client 前置中间件链为父链的子链
        request_id: 请求唯一标识，用于日志追踪

    同一个 Request 可以多次 send，每次都会重新物化中间件链；通常一个逻辑请求只发送一次。
    Request 不是线程安全的，不要在多个线程之间共享。
    """

    def __init__(self, client: Client):
        self.client = client
        self.middlewares = client.pre_chain.child_chain()
        self._context: Context | None = Context.background()
        self.request_id = generate_request_id()

    @property
    def context(self) -> Context | None:
        return self._context

    def with_context(self, context: Context | None) -> Request:
        """设置请求上下文，用于取消、截止时间和向中间件传递数据"""
        self._context = context
        return self

    def use(self, *middlewares: Middleware) -> Request:
        """添加只作用于本请求的中间件"""
        self.middlewares.use(*middlewares)
        return self

    def use_func(self, fn: Callable[[Handler], Handler]) -> Request:
        """添加以函数形式定义、只作用于本请求的中间件"""
        self.middlewares.use_func(fn)
        return self

    # ========== 常用中间件的快捷方法 ==========

    def get(self) -> Request:
        return self.method(HTTP_METHOD_GET)

    def post(self) -> Request:
        return self.method(HTTP_METHOD_POST)

    def put(self) -> Request:
        return self.method(HTTP_METHOD_PUT)

    def delete(self) -> Request:
        return self.method(HTTP_METHOD_DELETE)

    def patch(self) -> Request:
        return self.method(HTTP_METHOD_PATCH)

    def head(self) -> Request:
        return self.method(HTTP_METHOD_HEAD)

    def options(self) -> Request:
        return self.method(HTTP_METHOD_OPTIONS)

    def connect(self) -> Request:
        return self.method(HTTP_METHOD_CONNECT)

    def trace(self) -> Request:
        return self.method(HTTP_METHOD_TRACE)

    def method(self, verb: str) -> Request:
        """设置请求方法"""
        return self.use(headers.method(verb))

    def url(self, raw_url: str) -> Request:
        """设置请求 URL"""
        return self.use(url.url(raw_url))

    def header(self, key: str, value: str) -> Request:
        """追加请求头"""
        return self.use(headers.add(key, value))

    def body(self, reader: Any) -> Request:
        """设置请求体（类文件对象、bytes 或 str）"""
        return self.use(body.reader(reader))

    # ========== 发送 ==========

    def send(self) -> Response:
        """
        物化中间件管道并发送请求

        返回:
            Response，管道中抛出的异常不会向外抛出，而是保存在 Response.error 中

        执行步骤:
            1. 依次折叠后置中间件链和本请求的中间件链（包含前置中间件）
            2. 上下文为 None 时使用后台上下文
            3. 以空请求启动管道
            4. 把结果或异常包装为 Response
        """
        handler = self.middlewares.exec(self.client.post_chain.exec(self.client.send_request))
        if self._context is None:
            self._context = Context.background()

        outgoing = empty_request(context=self._context, request_id=self.request_id)
        try:
            raw = handler(outgoing)
        except Exception as e:
            logger.error(f"[{self.request_id}] Request failed: {e}")
            return Response(getattr(e, "response", None), e)
        return Response(raw)
