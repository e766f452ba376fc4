"""工具函数模块

提供日志脱敏、请求 ID 生成以及中间件结果容器等实用功能
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


# 默认敏感请求头名称集合
DEFAULT_SENSITIVE_HEADERS = {
    "Authorization",
    "Proxy-Authorization",
    "Cookie",
    "Set-Cookie",
    "X-API-Key",
    "X-Auth-Token",
    "X-Access-Token",
}

# 默认敏感URL参数名称集合
DEFAULT_SENSITIVE_PARAMS = {
    "token",
    "password",
    "secret",
    "key",
    "api_key",
    "apikey",
    "access_token",
    "auth_token",
}


def sanitize_headers(
    headers: Mapping[str, str],
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, str]:
    """
    脱敏请求头中的敏感信息

    参数:
        headers: 原始请求头（dict 或 CaseInsensitiveDict）
        sensitive_keys: 敏感键名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的请求头字典（新字典，不修改原请求头）

    示例:
        >>> sanitize_headers({"Authorization": "Bearer token123", "Accept": "*/*"})
        {"Authorization": "***", "Accept": "*/*"}
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS
    sensitive_keys_lower = {k.lower() for k in sensitive_keys}

    return {k: mask if k.lower() in sensitive_keys_lower else v for k, v in headers.items()}


def sanitize_url(
    url: str,
    sensitive_params: set[str] | None = None,
    mask: str = "***",
) -> str:
    """
    脱敏 URL 中的敏感查询参数和用户信息

    参数:
        url: 原始 URL
        sensitive_params: 敏感参数名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的 URL

    示例:
        >>> sanitize_url("https://user:pw@api.example.com/user?token=abc123&page=1")
        "https://***@api.example.com/user?token=***&page=1"
    """
    if sensitive_params is None:
        sensitive_params = DEFAULT_SENSITIVE_PARAMS
    sensitive_params_lower = {p.lower() for p in sensitive_params}

    parsed = urlsplit(url)
    netloc = parsed.netloc
    if "@" in netloc:
        netloc = f"{mask}@{netloc.rsplit('@', 1)[1]}"

    query = parsed.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        query = urlencode([(k, mask if k.lower() in sensitive_params_lower else v) for k, v in pairs], safe="*")

    return urlunsplit(parsed._replace(netloc=netloc, query=query))


def generate_request_id(suffix: Any = None) -> str:
    """生成全局唯一的请求 ID，格式 REQ-<毫秒时间戳>-<8位十六进制>[-suffix]"""
    timestamp = int(time.time() * 1000)
    short_uuid = uuid.uuid4().hex[:8]
    request_id = f"REQ-{timestamp}-{short_uuid}"
    return f"{request_id}-{suffix}" if suffix is not None else request_id


class Ref:
    """
    结果容器

    响应类中间件（如 responsebody.json、headers.read_int）把读取到的值写入 ref.value

    使用示例:
        >>> data = Ref()
        >>> client.request().get().url(url).use(responsebody.json(data)).send()
        >>> data.value
    """

    def __init__(self, value: Any = None):
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"
