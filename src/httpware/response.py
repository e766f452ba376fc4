"""
响应模块

Response 是对 requests.Response 的轻量包装，同时携带管道返回的异常
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from httpware.exceptions import HTTPWareError

logger = logging.getLogger(__name__)


class Response:
    """
    管道执行结果

    属性:
        raw: 传输层响应，传输失败时可能为 None
        error: 管道返回的异常，成功时为 None

    其他属性（status_code、headers、content 等）直接转发到 raw
    """

    def __init__(self, raw: requests.Response | None, error: Exception | None = None):
        self.raw = raw
        self.error = error

    def __getattr__(self, name: str) -> Any:
        raw = self.__dict__.get("raw")
        if raw is None:
            raise AttributeError(f"{type(self).__name__} has no attribute {name!r} (no response received)")
        return getattr(raw, name)

    @property
    def ok(self) -> bool:
        """没有携带异常且收到了响应"""
        return self.error is None and self.raw is not None

    def raise_for_error(self) -> None:
        """携带异常时抛出该异常"""
        if self.error is not None:
            raise self.error

    def json(self) -> Any:
        """
        把响应体按 JSON 解码

        返回:
            解码后的数据，响应体为空时返回 None

        执行步骤:
            1. 携带异常时原样抛出，不读取响应体
            2. 解码响应体
            3. 无论成功与否都关闭响应；解码失败时以解码异常为准，关闭异常只记录日志

        异常:
            HTTPWareError: 既没有异常也没有响应（例如中间件短路时返回了 None）
        """
        self.raise_for_error()
        if self.raw is None:
            raise HTTPWareError("no response received")

        try:
            data = self.raw.json() if self.raw.content.strip() else None
        except Exception:
            try:
                self.raw.close()
            except Exception as close_error:
                logger.debug(f"Closing response after decode failure failed: {close_error}")
            raise
        self.raw.close()
        return data

    def close(self) -> None:
        if self.raw is not None:
            self.raw.close()

    def __enter__(self) -> Response:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        if self.raw is None:
            return f"<Response error={self.error!r}>"
        return f"<Response [{self.raw.status_code}] error={self.error!r}>"
