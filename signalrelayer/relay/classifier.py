"""
事件分类器 - 将协议内容映射为可读的分类事件
Event classifier - maps protocol content to human-readable classified events.

除日志外没有副作用；相同的内容和查询结果总是得到相同的事件。
No side effects besides logging; the same content and lookup results
always yield the same event.
"""

from __future__ import annotations

import logging
from typing import Protocol

from signalrelayer.message.content import (
    AccountId,
    CallMessage,
    DataMessage,
    NullMessage,
    ProtocolContent,
    SyncMessage,
    TypingMessage,
)
from signalrelayer.message.event import ClassifiedEvent, Direction
from signalrelayer.message.thread import ContactThread, Thread
from signalrelayer.store.session_store import ContactRecord, GroupRecord

logger = logging.getLogger(__name__)

NULL_MESSAGE_SUMMARY = "Null message (for example deleted)"
EMPTY_DATA_MESSAGE_SUMMARY = "Empty data message"
CALL_SUMMARY = "is calling!"
TYPING_SUMMARY = "is typing..."
MISSING_GROUP = "<missing group>"


class SessionLookups(Protocol):
    """分类器所需的只读查询 / Read-only lookups the classifier needs."""

    async def contact_by_id(self, account: AccountId) -> ContactRecord | None: ...

    async def group(self, key: str) -> GroupRecord | None: ...

    async def message(
        self, thread: Thread, timestamp: int
    ) -> ProtocolContent | None: ...


async def summarize_data_message(
    thread: Thread, message: DataMessage, lookups: SessionLookups
) -> str | None:
    """
    按优先级为数据消息生成摘要：引用回复 > 表情回应 > 正文 > 空消息
    Summarize a data message by precedence: quoted reply, reaction, body, empty.

    表情回应的目标消息无法解析时返回 None（事件被丢弃）。
    Returns None when a reaction's target cannot be resolved (event dropped).
    """
    quote = message.quote
    if quote is not None and quote.text is not None and message.body is not None:
        return f'Answer to message "{quote.text}": {message.body}'

    reaction = message.reaction
    if (
        reaction is not None
        and reaction.target_sent_timestamp is not None
        and reaction.emoji is not None
    ):
        timestamp = reaction.target_sent_timestamp
        target = await lookups.message(thread, timestamp)
        if target is None:
            logger.warning("no message in %s sent at %d", thread, timestamp)
            return None
        if not isinstance(target.body, DataMessage) or target.body.body is None:
            logger.warning("message reacted to has no body")
            return None
        return f'Reacted with {reaction.emoji} to message: "{target.body.body}"'

    if message.body is not None:
        return message.body

    return EMPTY_DATA_MESSAGE_SUMMARY


async def format_contact(account: AccountId, lookups: SessionLookups) -> str:
    """联系人显示名："<name>: <id>" 或原始 ID / Contact display name."""
    contact = await lookups.contact_by_id(account)
    if contact is not None and contact.name:
        return f"{contact.name}: {account}"
    return str(account)


async def format_group(key: str, lookups: SessionLookups) -> str:
    """群组标题，缺失时为占位符 / Group title, or a placeholder."""
    group = await lookups.group(key)
    if group is None:
        return MISSING_GROUP
    return group.title


async def format_prefix(
    direction: Direction,
    thread: Thread,
    content: ProtocolContent,
    lookups: SessionLookups,
) -> str:
    """
    生成方向/线程前缀
    Build the direction/thread prefix.
    """
    ts = content.timestamp
    if isinstance(thread, ContactThread):
        contact = await format_contact(thread.account, lookups)
        if direction is Direction.RECEIVED:
            return f"From {contact} @ {ts}: "
        return f"To {contact} @ {ts}"

    group = await format_group(thread.key, lookups)
    if direction is Direction.RECEIVED:
        sender = await format_contact(content.sender, lookups)
        return f"From {sender} to group {group} @ {ts}: "
    return f"To group {group} @ {ts}"


async def classify(
    content: ProtocolContent,
    thread: Thread,
    lookups: SessionLookups,
) -> ClassifiedEvent | None:
    """
    对一条内容进行分类；不需要展示时返回 None
    Classify one content item; returns None when nothing should be shown.
    """
    body = content.body
    direction = Direction.RECEIVED
    summary: str | None

    if isinstance(body, NullMessage):
        summary = NULL_MESSAGE_SUMMARY
    elif isinstance(body, DataMessage):
        summary = await summarize_data_message(thread, body, lookups)
    elif (
        isinstance(body, SyncMessage)
        and body.sent is not None
        and body.sent.message is not None
    ):
        direction = Direction.SENT
        summary = await summarize_data_message(thread, body.sent.message, lookups)
    elif isinstance(body, CallMessage):
        summary = CALL_SUMMARY
    elif isinstance(body, TypingMessage):
        summary = TYPING_SUMMARY
    else:
        logger.warning("unsupported message %r", body)
        return None

    if summary is None:
        return None

    prefix = await format_prefix(direction, thread, content, lookups)
    return ClassifiedEvent(
        direction=direction,
        thread=thread,
        summary=summary,
        timestamp=content.timestamp,
        prefix=prefix,
    )
