"""重试模块

重试发生在传输层：RetryAdapter 包装挂载在 requests.Session 上的传输适配器，
Client 在构造时（未禁用重试的情况下）调用 enable 完成包装。

每个请求的重试行为通过两个中间件配置，配置保存在请求上下文中:
    - set_classifier(fn): 判断一次交换是否需要重试，多次注册按注册顺序做逻辑或
    - times(n): 最大尝试次数（1 表示不重试）

没有注册分类器的请求不会重试；注册了分类器但没有设置次数时最多尝试 DEFAULT_RETRY_TIMES 次。

使用示例:
    >>> client.request().get().url("https://api.example.com/flaky").use(
    ...     retry.set_classifier(retry.on_500_plus_classifier),
    ...     retry.times(3),
    ... ).send()
"""

from __future__ import annotations

import logging
from typing import Callable

import requests
from requests.adapters import BaseAdapter
from requests.utils import rewind_body
from urllib3.exceptions import InvalidHeader
from urllib3.util.retry import Retry

from httpware.chain import Middleware, RequestProcessor
from httpware.constants import DEFAULT_RETRY_TIMES, RETRY_BACKOFF_FACTOR, RETRY_BACKOFF_MAX
from httpware.context import Context, ContextKey
from httpware.exceptions import ValidationError
from httpware.outgoing import OutgoingRequest
from httpware.sender import active_request, clip_timeout
from httpware.utils import sanitize_url

logger = logging.getLogger(__name__)

Classifier = Callable[[requests.Response | None, Exception | None], bool]

CLASSIFIER_KEY = ContextKey("retry.classifier")
TIMES_KEY = ContextKey("retry.times")


# ========== 分类器 ==========


def any_error_classifier(response: requests.Response | None, error: Exception | None) -> bool:
    """出现任何异常时重试"""
    return error is not None


def on_500_plus_classifier(response: requests.Response | None, error: Exception | None) -> bool:
    """响应状态码 >= 500 时重试"""
    return response is not None and response.status_code >= 500


def or_classifier(*classifiers: Classifier) -> Classifier:
    """任意一个分类器返回 True 时重试，没有分类器时返回 False"""

    def classify(response: requests.Response | None, error: Exception | None) -> bool:
        return any(classifier(response, error) for classifier in classifiers)

    return classify


def and_classifier(*classifiers: Classifier) -> Classifier:
    """所有分类器都返回 True 时重试，没有分类器时返回 False"""

    def classify(response: requests.Response | None, error: Exception | None) -> bool:
        if not classifiers:
            return False
        return all(classifier(response, error) for classifier in classifiers)

    return classify


# ========== 配置中间件 ==========


def set_classifier(classifier: Classifier) -> Middleware:
    """注册重试分类器，已有分类器时与之做逻辑或（先注册的先判断）"""

    def process(request: OutgoingRequest) -> None:
        current = request.context.value(CLASSIFIER_KEY)
        combined = classifier if current is None else or_classifier(current, classifier)
        request.context = request.context.with_value(CLASSIFIER_KEY, combined)

    return RequestProcessor(process)


def times(attempts: int) -> Middleware:
    """
    设置最大尝试次数

    异常:
        ValidationError: attempts 小于 1
    """
    if attempts < 1:
        raise ValidationError(f"retry.times: attempts must be at least 1, got {attempts}")

    def process(request: OutgoingRequest) -> None:
        request.context = request.context.with_value(TIMES_KEY, attempts)

    return RequestProcessor(process)


# ========== 传输层 ==========


class RetryAdapter(BaseAdapter):
    """
    带重试能力的传输适配器

    包装一个已有的 requests 传输适配器，按当前请求上下文中的分类器和次数重试。

    参数:
        adapter: 被包装的传输适配器
        backoff_factor: 指数退避因子，第一次重试立即进行，之后等待 factor * 2^(n-1) 秒
        backoff_max: 单次退避的最长等待时间（秒）
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        backoff_factor: float = RETRY_BACKOFF_FACTOR,
        backoff_max: float = RETRY_BACKOFF_MAX,
    ):
        super().__init__()
        self.adapter = adapter
        self.backoff_factor = backoff_factor
        self.backoff_max = backoff_max

    def send(self, request: requests.PreparedRequest, timeout=None, **kwargs) -> requests.Response:
        """
        发送请求，必要时重试

        执行步骤:
            1. 检查上下文，已结束时抛出上下文异常
            2. 以裁剪后的超时时间调用被包装的适配器
            3. 每次尝试后调用分类器
            4. 分类器返回 False、次数用尽或请求体无法重放时返回（或抛出）本次结果
            5. 否则丢弃响应、按退避策略等待（可被上下文取消打断）、重放请求体后再次尝试
        """
        outgoing = active_request()
        context = outgoing.context if outgoing is not None else Context.background()
        classifier = context.value(CLASSIFIER_KEY)
        attempts = context.value(TIMES_KEY, DEFAULT_RETRY_TIMES)
        request_id = outgoing.request_id if outgoing is not None else ""

        retry = Retry(
            total=attempts - 1,
            backoff_factor=self.backoff_factor,
            backoff_max=self.backoff_max,
            raise_on_status=False,
        )
        attempt = 1

        while True:
            context.raise_if_done()
            response, error = self._attempt(request, clip_timeout(timeout, context), kwargs)

            if classifier is None or not classifier(response, error):
                return self._finish(response, error)
            if retry.total <= 0:
                logger.warning(f"[{request_id}] Giving up on {request.method} after {attempt} attempts")
                return self._finish(response, error)
            if not self._can_replay(request, outgoing):
                logger.warning(f"[{request_id}] Request body cannot be replayed, skipping retry")
                return self._finish(response, error)

            retry = retry.increment(method=request.method, url=request.url)
            delay = self._delay(retry, response)
            self._discard(response)

            if context.done():
                raise context.error() from error
            logger.info(
                f"[{request_id}] Retrying {request.method} {sanitize_url(request.url or '')} "
                f"(attempt {attempt + 1}/{attempts}) in {delay:.2f}s"
            )
            if context.wait(delay):
                raise context.error() from error

            self._replay_body(request, outgoing)
            attempt += 1

    def _attempt(self, request, timeout, kwargs) -> tuple[requests.Response | None, Exception | None]:
        try:
            return self.adapter.send(request, timeout=timeout, **kwargs), None
        except requests.exceptions.RequestException as e:
            return e.response, e

    def _finish(self, response: requests.Response | None, error: Exception | None) -> requests.Response:
        if error is not None:
            raise error
        return response

    def _delay(self, retry: Retry, response: requests.Response | None) -> float:
        if response is not None and response.status_code in Retry.RETRY_AFTER_STATUS_CODES:
            try:
                retry_after = retry.get_retry_after(response)
            except InvalidHeader:
                logger.warning(f"Ignoring invalid Retry-After header: {response.headers.get('Retry-After')!r}")
                retry_after = None
            if retry_after is not None:
                return retry_after
        return retry.get_backoff_time()

    def _discard(self, response: requests.Response | None) -> None:
        """读空并关闭被丢弃的响应，使连接可以被复用"""
        if response is None:
            return
        try:
            response.content
        except (requests.exceptions.RequestException, RuntimeError):
            response.raw.read(decode_content=False)
        response.close()

    def _can_replay(self, request: requests.PreparedRequest, outgoing: OutgoingRequest | None) -> bool:
        if request.body is None or isinstance(request.body, (bytes, str)):
            return True
        if outgoing is not None and outgoing.body_provider is not None:
            return True
        # tell() 失败时 requests 记录的是 object() 占位
        return isinstance(getattr(request, "_body_position", None), int)

    def _replay_body(self, request: requests.PreparedRequest, outgoing: OutgoingRequest | None) -> None:
        if request.body is None or isinstance(request.body, (bytes, str)):
            return
        if outgoing is not None and outgoing.body_provider is not None:
            request.body = outgoing.body_provider()
        else:
            rewind_body(request)

    def close(self) -> None:
        self.adapter.close()


def enable(session: requests.Session, **adapter_kwargs) -> requests.Session:
    """为会话上挂载的所有传输适配器加上重试能力，重复调用不会重复包装"""
    for prefix, adapter in list(session.adapters.items()):
        if not isinstance(adapter, RetryAdapter):
            session.mount(prefix, RetryAdapter(adapter, **adapter_kwargs))
    logger.debug(f"Retry enabled for adapters: {list(session.adapters)}")
    return session
