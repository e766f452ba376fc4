"""请求体中间件

设置待发送请求的请求体。

注意: 除 provider 外，所有设置请求体的中间件都会把 GET 或未设置的方法提升为 POST，
需要带请求体的 GET 请求时，请在请求体中间件之后再设置方法。
"""

from __future__ import annotations

import io
import json as jsonlib
import logging
from typing import Any
from xml.etree import ElementTree

from httpware.chain import Middleware, RequestProcessor
from httpware.constants import BODY_PROMOTED_METHODS, CONTENT_TYPE_JSON, CONTENT_TYPE_XML, HTTP_METHOD_POST
from httpware.exceptions import ValidationError
from httpware.outgoing import BodyProvider, OutgoingRequest

logger = logging.getLogger(__name__)


def string(data: str) -> Middleware:
    """以 UTF-8 编码的字符串作为请求体"""
    return _bytes_body(data.encode("utf-8"))


def json(data: Any) -> Middleware:
    """
    以 JSON 作为请求体

    str 和 bytes 原样使用，其他对象使用 json.dumps 编码。
    Content-Type 设置为 application/json。
    """

    def process(request: OutgoingRequest) -> None:
        if isinstance(data, (str, bytes)):
            payload = _to_bytes(data)
        else:
            payload = jsonlib.dumps(data).encode("utf-8")
        _apply_bytes(request, payload)
        request.set_header("Content-Type", CONTENT_TYPE_JSON)

    return RequestProcessor(process)


def xml(data: str | bytes | ElementTree.Element) -> Middleware:
    """
    以 XML 作为请求体

    str 和 bytes 原样使用，ElementTree.Element 序列化后使用。
    Content-Type 设置为 application/xml。

    异常:
        ValidationError: data 类型不受支持（请求不会被发送）
    """

    def process(request: OutgoingRequest) -> None:
        if isinstance(data, (str, bytes)):
            payload = _to_bytes(data)
        elif isinstance(data, ElementTree.Element):
            payload = ElementTree.tostring(data, encoding="utf-8")
        else:
            raise ValidationError(f"body.xml: unsupported data type {type(data).__name__}")
        _apply_bytes(request, payload)
        request.set_header("Content-Type", CONTENT_TYPE_XML)

    return RequestProcessor(process)


def reader(stream: Any) -> Middleware:
    """
    以类文件对象（或 bytes、str）作为请求体，不设置 Content-Type

    能确定长度时设置 Content-Length。流只能读取一次，重试时只有可以 seek 的流会被倒回重放。
    """

    def process(request: OutgoingRequest) -> None:
        if isinstance(stream, (str, bytes)):
            _apply_bytes(request, _to_bytes(stream))
            return
        length = _known_length(stream)
        if length is not None:
            request.set_header("Content-Length", str(length))
        request.body = stream
        request.body_provider = None
        request.method = _promoted_method(request.method)

    return RequestProcessor(process)


def provider(factory: BodyProvider) -> Middleware:
    """
    设置请求体提供者

    每次调用 factory 都返回一份全新的请求体；请求体未通过其他方式设置时，
    发送器使用它生成请求体，重试时也使用它重放请求体。不修改请求方法。
    """

    def process(request: OutgoingRequest) -> None:
        request.body_provider = factory

    return RequestProcessor(process)


def _bytes_body(payload: bytes) -> Middleware:
    return RequestProcessor(lambda request: _apply_bytes(request, payload))


def _apply_bytes(request: OutgoingRequest, payload: bytes) -> None:
    request.body = payload
    request.body_provider = lambda: payload
    request.set_header("Content-Length", str(len(payload)))
    request.method = _promoted_method(request.method)


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def _known_length(stream: Any) -> int | None:
    if isinstance(stream, io.BytesIO):
        return len(stream.getbuffer()) - stream.tell()
    if isinstance(stream, (bytearray, memoryview)):
        return len(stream)
    return None


def _promoted_method(current: str) -> str:
    if current.upper() in BODY_PROMOTED_METHODS:
        return HTTP_METHOD_POST
    return current
