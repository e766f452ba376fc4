"""请求头中间件

修改待发送请求的请求头和方法，从上下文读取请求头，以及把响应头读入 Ref
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests

from httpware.chain import Handler, Middleware, MiddlewareFunc, RequestProcessor, ResponseProcessor
from httpware.context import Context
from httpware.exceptions import ContextValueError, HeaderValueError
from httpware.outgoing import OutgoingRequest
from httpware.utils import Ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Header:
    """from_context 中间件使用的请求头：名称及其取值"""

    key: str
    values: tuple[str, ...] = ()


def method(verb: str) -> Middleware:
    """设置请求方法"""

    def process(request: OutgoingRequest) -> None:
        request.method = verb

    return RequestProcessor(process)


def set(header: str, value: str) -> Middleware:  # noqa: A001
    """设置请求头，覆盖已有的值"""
    return RequestProcessor(lambda request: request.set_header(header, value))


def add(header: str, value: str) -> Middleware:
    """追加请求头的值"""
    return RequestProcessor(lambda request: request.add_header(header, value))


def delete(header: str) -> Middleware:
    """删除请求头"""
    return RequestProcessor(lambda request: request.del_header(header))


def set_map(headers: Mapping[str, str]) -> Middleware:
    """批量设置请求头"""

    def process(request: OutgoingRequest) -> None:
        for key, value in headers.items():
            request.set_header(key, value)

    return RequestProcessor(process)


def from_context(key: Any) -> Middleware:
    """
    从请求上下文中读取请求头并设置到请求上

    上下文中 key 对应的值必须是 Header 或 Header 列表，其他类型（包括缺失）
    会抛出 ContextValueError，请求不会被发送。

    一个 Header 带多个值时用 ", " 连接成一个请求头，而不是逐个设置只保留最后一个值。
    """

    def wrap(next_handler: Handler) -> Handler:
        def handler(request: OutgoingRequest) -> requests.Response:
            value = request.context.value(key)
            if isinstance(value, Header):
                headers = [value]
            elif isinstance(value, (list, tuple)) and all(isinstance(h, Header) for h in value):
                headers = list(value)
            else:
                raise ContextValueError(
                    f"headers.from_context: unsupported value for {key!r}: {type(value).__name__}"
                )
            for header in headers:
                if header.values:
                    request.set_header(header.key, ", ".join(header.values))
            return next_handler(request)

        return handler

    return MiddlewareFunc(wrap)


def to_context(context: Context, key: Any, header: str, *values: str) -> Context:
    """返回携带单个请求头（可有多个值）的上下文，供 from_context 使用"""
    return context.with_value(key, Header(key=header, values=tuple(values)))


def to_context_list(context: Context, key: Any, headers: list[Header]) -> Context:
    """返回携带多个请求头的上下文，供 from_context 使用"""
    return context.with_value(key, list(headers))


def read_int(header: str, ref: Ref) -> Middleware:
    """
    把响应头解析为整数写入 ref.value

    - 内层已有异常时原样传递，不读取响应头
    - 响应头不存在时 ref 保持不变
    - 值无法转换为整数时抛出 HeaderValueError
    """

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None:
            return
        value = response.headers.get(header)
        if value is None:
            return
        try:
            ref.value = int(value.strip())
        except ValueError as e:
            raise HeaderValueError(f"header {header!r} value conversion to int failed: {value!r}") from e

    return ResponseProcessor(process)


def read_str(header: str, ref: Ref) -> Middleware:
    """把响应头的值写入 ref.value，响应头不存在时 ref 保持不变"""

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None:
            return
        value = response.headers.get(header)
        if value is not None:
            ref.value = value

    return ResponseProcessor(process)
