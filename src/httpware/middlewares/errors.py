"""错误转换中间件

把状态码 >= 400 的响应转换为 HTTPError
"""

from __future__ import annotations

import logging

import requests

from httpware.chain import Middleware, ResponseProcessor
from httpware.exceptions import HTTPError

logger = logging.getLogger(__name__)


def translate(read_body: bool = True) -> Middleware:
    """
    把错误响应转换为 HTTPError

    参数:
        read_body: 是否把响应体读入 HTTPError.body

    内层已有异常时原样传递。
    """

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None or response is None or response.status_code < 400:
            return
        raise build_http_error(response, read_body=read_body)

    return ResponseProcessor(process)


def build_http_error(response: requests.Response, read_body: bool = True) -> HTTPError:
    """根据响应构建 HTTPError，请求信息优先取自 response.request"""
    request = response.request
    method = request.method if request is not None and request.method else ""
    request_url = request.url if request is not None and request.url else (response.url or "")
    name = f"{response.status_code} {response.reason}" if response.reason else str(response.status_code)

    body = b""
    if read_body:
        try:
            body = response.content or b""
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to read error response body: {e}")

    return HTTPError(
        status_code=response.status_code,
        method=method,
        request_url=request_url,
        name=name,
        body=body,
        response=response,
    )
