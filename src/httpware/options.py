"""
客户端配置辅助模块

UserAgent 描述使用本库的产品信息，用于生成 User-Agent 请求头
"""

from __future__ import annotations

import platform
from dataclasses import dataclass

from httpware.constants import LIBRARY_NAME, LIBRARY_VERSION
from httpware.exceptions import ValidationError


@dataclass(frozen=True)
class UserAgent:
    """
    产品信息

    字符串形式: "<product>/<version> httpware/<库版本> <Python 实现>/<Python 版本>"
    例如 "myapp/1.0 httpware/0.1.0 CPython/3.12.1"
    """

    product: str = ""
    version: str = ""

    @classmethod
    def coerce(cls, value: UserAgent | tuple[str, str] | None) -> UserAgent:
        """把 None、UserAgent 或 (product, version) 统一转换为 UserAgent"""
        if value is None:
            return cls()
        if isinstance(value, UserAgent):
            return value
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(product=value[0], version=value[1])
        raise ValidationError(f"product_info must be a UserAgent or a (product, version) pair, got {value!r}")

    def is_empty(self) -> bool:
        return not self.product and not self.version

    def __str__(self) -> str:
        return (
            f"{self.product}/{self.version} "
            f"{LIBRARY_NAME}/{LIBRARY_VERSION} "
            f"{platform.python_implementation()}/{platform.python_version()}"
        )
