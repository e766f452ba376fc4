"""URL 中间件

设置或修改待发送请求的 URL。

注意: url 和 base_url 在原始地址没有 scheme、但包含主机或路径时默认使用 https，
例如 "api.example.com/users" 会被解析为 "https://api.example.com/users"。
"""

from __future__ import annotations

from collections.abc import Mapping

from urllib3.util import Url, parse_url

from httpware.chain import Middleware, RequestProcessor
from httpware.outgoing import OutgoingRequest


def url(raw_url: str) -> Middleware:
    """
    解析并替换整个 URL

    只需要修改路径或参数时，使用本模块的其他中间件

    异常:
        urllib3.exceptions.LocationParseError: URL 无法解析（请求不会被发送）
    """

    def process(request: OutgoingRequest) -> None:
        request.url = _parse(raw_url)

    return RequestProcessor(process)


def base_url(raw_url: str) -> Middleware:
    """解析 raw_url 并只设置 scheme、主机和端口"""

    def process(request: OutgoingRequest) -> None:
        parsed = _parse(raw_url)
        request.url = _replace(request.url, scheme=parsed.scheme, host=parsed.host, port=parsed.port)

    return RequestProcessor(process)


def path(value: str) -> Middleware:
    """设置 URL 路径"""

    def process(request: OutgoingRequest) -> None:
        request.url = _replace(request.url, path=_normalize_path(value))

    return RequestProcessor(process)


def add_path(value: str) -> Middleware:
    """在当前路径后追加路径"""

    def process(request: OutgoingRequest) -> None:
        request.url = _replace(request.url, path=(request.url.path or "") + _normalize_path(value))

    return RequestProcessor(process)


def path_prefix(value: str) -> Middleware:
    """在当前路径前添加前缀"""

    def process(request: OutgoingRequest) -> None:
        request.url = _replace(request.url, path=_normalize_path(value) + (request.url.path or ""))

    return RequestProcessor(process)


def param(key: str, value: str) -> Middleware:
    """把路径中所有的 ":key" 替换为 value"""

    def process(request: OutgoingRequest) -> None:
        request.url = _replace(request.url, path=_substitute(request.url.path, key, value))

    return RequestProcessor(process)


def params(values: Mapping[str, str]) -> Middleware:
    """按映射批量替换路径参数"""

    def process(request: OutgoingRequest) -> None:
        current = request.url.path
        for key, value in values.items():
            current = _substitute(current, key, value)
        request.url = _replace(request.url, path=current)

    return RequestProcessor(process)


def _substitute(current: str | None, key: str, value: str) -> str | None:
    if current is None:
        return None
    return current.replace(f":{key}", str(value))


def _normalize_path(value: str) -> str:
    return "" if value == "/" else value


def _replace(current: Url, **changes) -> Url:
    # Url 构造时会为不以 "/" 开头的路径补上 "/"，namedtuple._replace 不会
    fields = {**current._asdict(), **changes}
    if fields["path"] == "":
        fields["path"] = None
    return Url(**fields)


def _parse(raw_url: str) -> Url:
    parsed = parse_url(raw_url)
    if parsed.scheme is None and (parsed.host or parsed.path):
        parsed = _replace(parsed, scheme="https")
    return parsed
