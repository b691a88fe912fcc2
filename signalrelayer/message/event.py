"""
分类事件 - 一条内容的可读、可归属的呈现
Classified event - human-readable, attributed rendering of one content item.

事件是瞬态的，只交给通知接收器和控制台。
Events are transient; they only go to the notification sink and the console.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from signalrelayer.message.thread import Thread


class Direction(str, Enum):
    """消息方向 / Message direction."""

    SENT = "sent"
    RECEIVED = "received"


@dataclass(frozen=True)
class ClassifiedEvent:
    """
    分类事件
    Classified event.
    """

    direction: Direction
    thread: Thread
    summary: str
    timestamp: int
    # 例如 "From Alice: <uuid> @ <ts>: "
    prefix: str = ""

    def __str__(self) -> str:
        return f"{self.prefix} / {self.summary}"


@dataclass(frozen=True)
class OutboundRequest:
    """
    出站请求 - 由传输层创建，只被消费一次
    Outbound request - created by the transport layer, consumed exactly once.
    """

    destination: str
    body: str
