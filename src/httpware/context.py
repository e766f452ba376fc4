"""
请求上下文模块

为每次请求携带取消信号、截止时间和键值数据。上下文不可变，派生操作
（with_value、with_cancel、with_timeout、with_deadline）总是返回新的上下文：
- 子上下文继承父上下文的全部值
- 子上下文的截止时间取父子两者中较早的一个
- 父上下文被取消时，所有派生的子上下文一并被取消

使用示例:
    >>> ctx = Context.background().with_timeout(5)
    >>> ctx = ctx.with_value(TENANT_KEY, "acme")
    >>> client.request().with_context(ctx).get().url("https://api.example.com").send()
"""

from __future__ import annotations

import threading
import time
import weakref
from typing import Any

from httpware.exceptions import CancelledError, ContextError, DeadlineExceededError

# 保护取消状态和子上下文登记
_cancel_lock = threading.RLock()


class ContextKey:
    """
    上下文键

    按对象身份比较，不同模块创建的同名键互不冲突
    """

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<ContextKey {self.name}>"


class Context:
    """
    请求上下文

    属性:
        deadline: 截止时间（time.monotonic() 读数），None 表示没有截止时间
    """

    def __init__(
        self,
        parent: Context | None = None,
        values: dict[Any, Any] | None = None,
        deadline: float | None = None,
    ):
        self._parent = parent
        self._values = values if values is not None else {}
        self._deadline = _earliest(parent.deadline if parent else None, deadline)
        self._error: ContextError | None = None
        self._done_event = threading.Event()
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()

        if parent is not None:
            parent._adopt(self)

    @classmethod
    def background(cls) -> Context:
        """返回一个全新的根上下文：没有值、没有截止时间、不会被取消"""
        return cls()

    # ========== 派生 ==========

    def with_value(self, key: Any, value: Any) -> Context:
        """返回携带 key -> value 的子上下文"""
        return Context(parent=self, values={**self._values, key: value})

    def with_cancel(self) -> Context:
        """返回可单独取消的子上下文，取消它不会影响当前上下文"""
        return Context(parent=self, values=self._values)

    def with_deadline(self, deadline: float) -> Context:
        """
        返回带截止时间的子上下文

        参数:
            deadline: time.monotonic() 时间点
        """
        return Context(parent=self, values=self._values, deadline=deadline)

    def with_timeout(self, seconds: float) -> Context:
        """返回在 seconds 秒后到期的子上下文"""
        return self.with_deadline(time.monotonic() + seconds)

    # ========== 读取 ==========

    def value(self, key: Any, default: Any = None) -> Any:
        return self._values.get(key, default)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """距离截止时间的剩余秒数（不小于 0），没有截止时间时返回 None"""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def done(self) -> bool:
        return self.error() is not None

    def error(self) -> ContextError | None:
        """
        返回上下文结束的原因

        返回:
            CancelledError / DeadlineExceededError，未结束时返回 None
        """
        if self._error is None and self._deadline is not None and time.monotonic() >= self._deadline:
            self._finish(DeadlineExceededError())
        return self._error

    def raise_if_done(self) -> None:
        error = self.error()
        if error is not None:
            raise error

    # ========== 取消 ==========

    def cancel(self) -> None:
        """取消当前上下文及其所有派生上下文"""
        self._finish(CancelledError())

    def wait(self, timeout: float | None = None) -> bool:
        """
        阻塞等待，直到超时或上下文结束

        参数:
            timeout: 最长等待秒数，None 表示等到上下文结束

        返回:
            上下文是否已结束
        """
        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        if timeout is None or timeout > 0:
            self._done_event.wait(timeout)
        return self.done()

    def _adopt(self, child: Context) -> None:
        with _cancel_lock:
            if self._error is not None:
                child._finish(self._error)
            else:
                self._children.add(child)

    def _finish(self, error: ContextError) -> None:
        with _cancel_lock:
            if self._error is not None:
                return
            self._error = error
            children = list(self._children)
            self._children.clear()
        self._done_event.set()
        for child in children:
            child._finish(error)

    def __repr__(self) -> str:
        state = type(self._error).__name__ if self._error else "active"
        return f"<Context {state} deadline={self._deadline}>"


def _earliest(first: float | None, second: float | None) -> float | None:
    if first is None:
        return second
    if second is None:
        return first
    return min(first, second)
