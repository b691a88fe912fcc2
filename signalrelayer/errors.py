"""
错误类型 - 中继器的异常层级
Error types - the relayer's exception hierarchy.

三个层级 / Three tiers:
- FatalRelayError: 存储或注册不可用，无法继续服务任何请求
  storage or registration unavailable, no request can be served.
- RequestError: 单个请求失败，序列化器继续处理下一个请求
  one request failed, the serializer moves on to the next one.
- ItemError: 接收流中单个内容项无法处理，跳过该项
  one stream item could not be handled, the item is skipped.
"""

from __future__ import annotations


class RelayError(Exception):
    """中继器错误基类 / Base class of relayer errors."""


class FatalRelayError(RelayError):
    """致命错误，结束进程 / Fatal error, ends the process."""


class StoreOpenError(FatalRelayError):
    """会话存储无法打开 / The session store could not be opened."""


class NotRegisteredError(FatalRelayError):
    """账户未注册 / The account is not registered."""


class SessionConflictError(FatalRelayError):
    """同时打开了两个会话 / Two sessions were open at the same time."""


class RequestError(RelayError):
    """单个请求失败 / A single request failed."""


class DestinationParseError(RequestError):
    """目标账户标识无法解析 / The destination account id could not be parsed."""


class SendError(RequestError):
    """发送失败 / Sending failed."""


class QueueClosedError(RelayError):
    """请求队列已关闭 / The request queue is closed."""


class ItemError(RelayError):
    """接收流中单项失败 / A single stream item failed."""


class ThreadDerivationError(ItemError):
    """无法从内容推导会话线程 / No thread could be derived from the content."""


class ProtocolError(RelayError):
    """协议客户端返回错误 / The protocol client returned an error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
