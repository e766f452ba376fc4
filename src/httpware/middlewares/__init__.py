"""
内置中间件

    - headers: 请求头、请求方法、上下文请求头、响应头读取
    - url: URL、路径、路径参数
    - body: 请求体（字符串、JSON、XML、流、提供者）
    - responsebody: 响应体读取（JSON、字符串、写入文件）
    - auth: 认证
    - errors: 错误响应转换为 HTTPError
    - retry: 重试分类器与传输层重试
    - cancel: 上下文取消检查
"""

from httpware.middlewares import auth, body, cancel, errors, headers, responsebody, retry, url

__all__ = ["auth", "body", "cancel", "errors", "headers", "responsebody", "retry", "url"]
