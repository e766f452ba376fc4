"""
中间件链模块

定义处理器（Handler）、中间件（Middleware）和中间件链（Chain）。

- Handler: 可调用对象 handler(request) -> requests.Response，失败时抛出异常。
  随异常一起返回的响应放在异常的 response 属性上（与 requests 的约定一致）。
- Middleware: 把一个 Handler 包装成新的 Handler。
- Chain: 有序的中间件集合，可以有父链。物化（exec）时先加入的中间件在最外层：
  它最先看到请求，最后看到响应。

执行顺序示例（m1、m2 依次加入）:
    请求 -> m1 -> m2 -> handler
    响应 <- m1 <- m2 <- handler
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, TypeAlias

import requests

from httpware.exceptions import ValidationError
from httpware.outgoing import OutgoingRequest

logger = logging.getLogger(__name__)

Handler: TypeAlias = Callable[[OutgoingRequest], requests.Response]


class Middleware(ABC):
    """中间件基类，子类实现 exec 返回包装后的处理器"""

    @abstractmethod
    def exec(self, next_handler: Handler) -> Handler:
        """
        包装下一个处理器

        返回的处理器每次被调用时，最多调用 next_handler 一次，也可以直接返回或抛出异常。
        重试时 exec 只会被调用一次，但返回的处理器可能被调用多次。
        """


class MiddlewareFunc(Middleware):
    """把函数 fn(next_handler) -> handler 适配为中间件"""

    def __init__(self, fn: Callable[[Handler], Handler]):
        self.fn = fn

    def exec(self, next_handler: Handler) -> Handler:
        return self.fn(next_handler)


class RequestProcessor(Middleware):
    """
    请求处理中间件

    在调用下一个处理器之前执行 fn(request)，用于修改待发送的请求。
    fn 抛出异常时管道被短路，下一个处理器不会被调用。
    """

    def __init__(self, fn: Callable[[OutgoingRequest], None]):
        self.fn = fn

    def exec(self, next_handler: Handler) -> Handler:
        def handler(request: OutgoingRequest) -> requests.Response:
            self.fn(request)
            return next_handler(request)

        return handler


class ResponseProcessor(Middleware):
    """
    响应处理中间件

    在下一个处理器返回后执行 fn(response, error):
    - error 为内层抛出的异常（没有则为 None），response 为返回的响应或异常携带的响应
    - fn 正常返回时原结果原样向外传递，内层异常会被重新抛出
    - fn 抛出异常时以该异常替换原结果，异常未携带响应时附上当前响应
    """

    def __init__(self, fn: Callable[[requests.Response | None, Exception | None], None]):
        self.fn = fn

    def exec(self, next_handler: Handler) -> Handler:
        def handler(request: OutgoingRequest) -> requests.Response:
            try:
                response = next_handler(request)
            except Exception as error:
                self._process(getattr(error, "response", None), error)
                raise
            self._process(response, None)
            return response

        return handler

    def _process(self, response: requests.Response | None, error: Exception | None) -> None:
        try:
            self.fn(response, error)
        except Exception as processed:
            if processed is not error and getattr(processed, "response", None) is None:
                processed.response = response
            raise


class Chain(Middleware):
    """
    中间件链

    持有有序的中间件列表和可选的父链。父链按引用持有：子链创建之后再加入父链的中间件，
    在子链下次物化时同样可见；修改子链不会影响父链。

    链本身也是中间件，可以嵌套到另一条链中。
    """

    def __init__(self, *middlewares: Middleware, parent: Chain | None = None):
        self.parent = parent
        self._middlewares: list[Middleware] = []
        self.use(*middlewares)

    def use(self, *middlewares: Middleware) -> Chain:
        """按参数顺序追加中间件"""
        for middleware in middlewares:
            if not isinstance(middleware, Middleware):
                raise ValidationError(f"middleware must be a Middleware instance, got {type(middleware).__name__}")
        self._middlewares.extend(middlewares)
        return self

    def use_func(self, fn: Callable[[Handler], Handler]) -> Chain:
        """追加以函数形式定义的中间件"""
        return self.use(MiddlewareFunc(fn))

    def child_chain(self) -> Chain:
        return Chain(parent=self)

    def middlewares(self) -> list[Middleware]:
        """返回生效的中间件列表：父链的生效列表 + 本链自身的列表"""
        inherited = self.parent.middlewares() if self.parent is not None else []
        return inherited + self._middlewares

    def exec(self, next_handler: Handler) -> Handler:
        """把生效的中间件折叠到 next_handler 上，第一个中间件位于最外层"""
        middlewares = self.middlewares()
        logger.debug(f"Materializing chain of {len(middlewares)} middlewares")
        handler = next_handler
        for middleware in reversed(middlewares):
            handler = middleware.exec(handler)
        return handler
