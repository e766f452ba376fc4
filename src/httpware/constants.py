"""
HTTP 客户端常量配置模块

定义客户端使用的常量、默认配置等
"""

# 库信息，用于生成 User-Agent
LIBRARY_NAME = "httpware"
LIBRARY_VERSION = "0.1.0"

# HTTP 方法常量
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_HEAD = "HEAD"
HTTP_METHOD_OPTIONS = "OPTIONS"
HTTP_METHOD_CONNECT = "CONNECT"
HTTP_METHOD_TRACE = "TRACE"

# 设置请求体时会被提升为 POST 的方法（空字符串表示未设置）
BODY_PROMOTED_METHODS = {"", HTTP_METHOD_GET}

# 内容类型
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_XML = "application/xml"

# 默认配置
DEFAULT_TIMEOUT = None  # 默认超时时间（秒），None 表示不超时
DEFAULT_CHUNK_SIZE = 8192  # 默认分块大小（字节）
MIN_TIMEOUT = 0.001  # 由截止时间裁剪出的最短超时时间（秒），urllib3 不接受 0

# 重试策略配置
DEFAULT_RETRY_TIMES = 3  # 设置了分类器但未设置次数时的最大尝试次数
RETRY_BACKOFF_FACTOR = 0.5  # 重试退避因子
RETRY_BACKOFF_MAX = 30  # 单次退避的最大等待时间（秒）

# 连接池配置
POOL_CONNECTIONS = 100  # 连接池大小
POOL_MAXSIZE = 100  # 连接池最大连接数

DEFAULT_POOL_CONFIG = {
    "pool_connections": POOL_CONNECTIONS,  # 连接池大小
    "pool_maxsize": POOL_MAXSIZE,  # 连接池最大连接数
}
