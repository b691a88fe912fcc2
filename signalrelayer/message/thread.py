"""
会话线程 - 一条内容所属的对话
Thread - the conversation a content item belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from signalrelayer.errors import ThreadDerivationError
from signalrelayer.message.content import (
    AccountId,
    DataMessage,
    ProtocolContent,
    SyncMessage,
    TypingMessage,
)


@dataclass(frozen=True)
class ContactThread:
    """与单个联系人的对话 / Conversation with a single contact."""

    account: AccountId

    @property
    def kind(self) -> str:
        return "contact"

    @property
    def key(self) -> str:
        return str(self.account)

    def __str__(self) -> str:
        return f"Thread(contact={self.account})"


@dataclass(frozen=True)
class GroupThread:
    """群组对话 / Group conversation."""

    key: str

    @property
    def kind(self) -> str:
        return "group"

    def __str__(self) -> str:
        return f"Thread(group={self.key})"


Thread = Union[ContactThread, GroupThread]


def thread_from_content(content: ProtocolContent) -> Thread:
    """
    从内容推导会话线程
    Derive the thread from a content item.

    失败时抛出 ThreadDerivationError。
    Raises ThreadDerivationError when no thread can be resolved.
    """
    body = content.body

    if isinstance(body, (DataMessage, TypingMessage)) and body.group is not None:
        return GroupThread(key=body.group.key)

    if isinstance(body, SyncMessage):
        sent = body.sent
        if sent is None:
            raise ThreadDerivationError("sync message without sent message")
        if sent.message is not None and sent.message.group is not None:
            return GroupThread(key=sent.message.group.key)
        if sent.destination is None:
            raise ThreadDerivationError("sent message without destination")
        return ContactThread(account=sent.destination)

    return ContactThread(account=content.sender)
