"""
消息模型模块 - 协议内容、会话线程和分类事件
Message model module - protocol content, threads and classified events.
"""

from signalrelayer.message.content import (
    AccountId,
    AttachmentPointer,
    CallMessage,
    ContentBody,
    DataMessage,
    GroupContext,
    NullMessage,
    OtherContent,
    ProtocolContent,
    Quote,
    Reaction,
    SentMessage,
    SyncMessage,
    TypingMessage,
    parse_account_id,
)
from signalrelayer.message.event import ClassifiedEvent, Direction, OutboundRequest
from signalrelayer.message.thread import (
    ContactThread,
    GroupThread,
    Thread,
    thread_from_content,
)

__all__ = [
    "AccountId",
    "AttachmentPointer",
    "CallMessage",
    "ContentBody",
    "DataMessage",
    "GroupContext",
    "NullMessage",
    "OtherContent",
    "ProtocolContent",
    "Quote",
    "Reaction",
    "SentMessage",
    "SyncMessage",
    "TypingMessage",
    "parse_account_id",
    "ClassifiedEvent",
    "Direction",
    "OutboundRequest",
    "ContactThread",
    "GroupThread",
    "Thread",
    "thread_from_content",
]
