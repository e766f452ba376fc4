"""
通用测试 Fixture 定义

提供测试所需的响应工厂、可追踪的发送器和中间件，以及本地 HTTP 测试服务器
"""

import io
import json
import threading
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from httpware.chain import Handler, Middleware
from httpware.outgoing import OutgoingRequest
from httpware.sender import BaseSender


def build_response(status_code=200, content=b"", headers=None, url="https://api.example.com/test", method="GET"):
    """构建一个真实的 requests.Response 对象（响应体来自内存）"""
    response = requests.Response()
    response.status_code = status_code
    response.reason = _reason(status_code)
    response.headers.update(headers or {})
    response.raw = io.BytesIO(content)
    response.url = url
    response.encoding = "utf-8"
    response.request = requests.Request(method=method, url=url).prepare()
    return response


def _reason(status_code):
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class TrackingSender(BaseSender):
    """
    记录调用的发送器

    参数:
        status_code: 返回的状态码
        content: 返回的响应体
        error: 不为 None 时抛出该异常而不是返回响应
        delay: 返回前等待的秒数
    """

    def __init__(self, status_code=200, content=b"", headers=None, error=None, delay=0, events=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.error = error
        self.delay = delay
        self.events = events
        self.requests: list[OutgoingRequest] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request: OutgoingRequest) -> requests.Response:
        self.requests.append(request)
        if self.events is not None:
            self.events.append("S")
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return build_response(
            self.status_code,
            self.content,
            headers=self.headers,
            url=request.url.url or "https://api.example.com/test",
            method=request.method or "GET",
        )

    def close(self) -> None:
        self.closed = True


class TrackingMiddleware(Middleware):
    """记录调用次数，并在 events 中记录进入（name）和返回（name）的顺序"""

    def __init__(self, name="T", before=None, after=None):
        self.name = name
        self.before = before
        self.after = after
        self.calls = 0

    def exec(self, next_handler: Handler) -> Handler:
        def handler(request: OutgoingRequest) -> requests.Response:
            self.calls += 1
            if self.before is not None:
                self.before.append(self.name)
            try:
                return next_handler(request)
            finally:
                if self.after is not None:
                    self.after.append(self.name)

        return handler


@pytest.fixture
def response_factory():
    """返回构建 requests.Response 的工厂函数"""
    return build_response


@pytest.fixture
def tracking_sender():
    """返回 200 的可追踪发送器"""
    return TrackingSender()


@pytest.fixture
def sender_factory():
    """返回 TrackingSender 类，用于构造自定义行为的发送器"""
    return TrackingSender


@pytest.fixture
def middleware_factory():
    """返回 TrackingMiddleware 类"""
    return TrackingMiddleware


# ========== 本地 HTTP 测试服务器 ==========


class _TestHandler(BaseHTTPRequestHandler):
    """
    测试服务器请求处理器

    路由:
        /echo: 以 JSON 返回请求方法、路径、查询参数、请求头和请求体
        /status/<code>: 返回指定状态码
        /sleep?seconds=N: 等待 N 秒后返回 200
        /flaky?key=K&failures=N: 同一个 key 的前 N 次请求返回 500，之后返回 200
    """

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _handle(self):
        parsed = urlsplit(self.path)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""

        if parsed.path == "/echo":
            payload = {
                "method": self.command,
                "path": parsed.path,
                "query": query,
                "headers": dict(self.headers.items()),
                "body": body.decode("utf-8"),
            }
            self._reply(200, json.dumps(payload).encode("utf-8"), "application/json")
        elif parsed.path.startswith("/status/"):
            code = int(parsed.path.rsplit("/", 1)[1])
            self._reply(code, json.dumps({"status": code}).encode("utf-8"), "application/json")
        elif parsed.path == "/sleep":
            time.sleep(float(query.get("seconds", "1")))
            self._reply(200, b"slept", "text/plain")
        elif parsed.path == "/flaky":
            counters = self.server.counters
            with self.server.lock:
                counters[query["key"]] = counters.get(query["key"], 0) + 1
                count = counters[query["key"]]
            if count <= int(query.get("failures", "1")):
                self._reply(500, b"try again", "text/plain")
            else:
                self._reply(200, json.dumps({"attempts": count}).encode("utf-8"), "application/json")
        else:
            self._reply(404, b"not found", "text/plain")

    def _reply(self, status, content, content_type):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(content)

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = do_OPTIONS = _handle


class _TestServer(ThreadingHTTPServer):
    daemon_threads = True

    def handle_error(self, request, client_address):
        # 客户端超时断开后服务端写响应会失败，忽略即可
        pass


@pytest.fixture(scope="module")
def local_server():
    """启动本地 HTTP 测试服务器（模块级），返回其基础 URL"""
    server = _TestServer(("127.0.0.1", 0), _TestHandler)
    server.counters = {}
    server.lock = threading.Lock()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
