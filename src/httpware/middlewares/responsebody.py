"""响应体中间件

以不同方式读取响应体。内层已有异常时原样传递，不读取响应体；
读取完成后无论成功与否都会关闭响应。
"""

from __future__ import annotations

import logging
from typing import IO, Any

import requests

from httpware.chain import Middleware, ResponseProcessor
from httpware.constants import DEFAULT_CHUNK_SIZE
from httpware.utils import Ref

logger = logging.getLogger(__name__)


def json(ref: Ref) -> Middleware:
    """把响应体按 JSON 解码后写入 ref.value"""

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None:
            return
        with response:
            logger.debug("Parsing response as JSON")
            ref.value = response.json()

    return ResponseProcessor(process)


def string(ref: Ref) -> Middleware:
    """把响应体解码为字符串后写入 ref.value"""

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None:
            return
        with response:
            ref.value = response.text

    return ResponseProcessor(process)


def writer(fileobj: IO[Any], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Middleware:
    """
    把响应体分块写入类文件对象

    参数:
        fileobj: 以二进制方式写入的对象（需要 write 方法）
        chunk_size: 分块读取大小（字节）
    """

    def process(response: requests.Response | None, error: Exception | None) -> None:
        if error is not None:
            return
        with response:
            logger.debug(f"Writing response content to {fileobj!r}")
            for chunk in response.iter_content(chunk_size=chunk_size):
                if chunk:
                    fileobj.write(chunk)

    return ResponseProcessor(process)
