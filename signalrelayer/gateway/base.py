"""
协议管理器基类 - 对外部 Signal 协议客户端的窄接口
Protocol manager base - narrow interface to the external Signal protocol client.

协议本身（加密、会话棘轮、设备链接、注册）不在本项目范围内。
The protocol itself (encryption, ratcheting, linking, registration) is out of scope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from signalrelayer.message.content import AccountId, AttachmentPointer, ProtocolContent
from signalrelayer.message.thread import Thread
from signalrelayer.store.session_store import ContactRecord, GroupRecord


class ProtocolManager(ABC):
    """
    协议管理器抽象基类
    Protocol manager abstract base.

    一个实例只属于一个请求，不可跨线程共享。
    An instance belongs to exactly one request and is never shared across threads.
    """

    @abstractmethod
    async def receive_messages(self) -> AsyncIterator[ProtocolContent]:
        """
        打开接收流；打开失败时抛出异常
        Open the receive stream; raises if the stream cannot be opened.
        """
        ...

    @abstractmethod
    async def send_message(
        self, destination: AccountId, body: str, timestamp: int
    ) -> None:
        """发送文本消息 / Send a text message."""
        ...

    @abstractmethod
    async def get_attachment(self, pointer: AttachmentPointer) -> bytes:
        """获取附件内容 / Fetch attachment bytes."""
        ...

    @abstractmethod
    async def contact_by_id(self, account: AccountId) -> ContactRecord | None:
        """查询联系人 / Look up a contact."""
        ...

    @abstractmethod
    async def group(self, key: str) -> GroupRecord | None:
        """查询群组 / Look up a group."""
        ...

    @abstractmethod
    async def message(self, thread: Thread, timestamp: int) -> ProtocolContent | None:
        """查询历史消息 / Look up a prior message."""
        ...

    async def close(self) -> None:
        """释放连接 / Release connections."""
        return None
