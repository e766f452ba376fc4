"""取消检查中间件"""

from __future__ import annotations

from httpware.chain import Middleware, RequestProcessor
from httpware.outgoing import OutgoingRequest


def check() -> Middleware:
    """请求上下文已被取消或已过截止时间时抛出上下文异常，后续处理器（包括发送器）不会被调用"""

    def process(request: OutgoingRequest) -> None:
        request.context.raise_if_done()

    return RequestProcessor(process)
