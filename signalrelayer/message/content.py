"""
协议内容 - 从 Signal 接收流中解码出的内容项
Protocol content - content items decoded from the Signal receive stream.

ContentBody 是一个标签联合，每个变体都是一个数据类。
ContentBody is a tagged union; each variant is a dataclass.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Union

from signalrelayer.errors import DestinationParseError

AccountId = uuid.UUID


def parse_account_id(text: str) -> AccountId:
    """
    解析账户标识（UUID）
    Parse an account identifier (UUID).
    """
    try:
        return uuid.UUID(text)
    except (ValueError, AttributeError, TypeError) as exc:
        raise DestinationParseError(f"invalid account id {text!r}: {exc}") from exc


@dataclass(frozen=True)
class Quote:
    """被引用的消息 / A quoted message."""

    id: int | None = None
    author: AccountId | None = None
    text: str | None = None


@dataclass(frozen=True)
class Reaction:
    """表情回应 / An emoji reaction."""

    emoji: str | None = None
    target_author: AccountId | None = None
    target_sent_timestamp: int | None = None
    is_remove: bool = False


@dataclass(frozen=True)
class AttachmentPointer:
    """附件引用 / Reference to an attachment held by the server."""

    id: str
    content_type: str | None = None
    filename: str | None = None
    size: int | None = None


@dataclass(frozen=True)
class GroupContext:
    """群组上下文 / Group context of a message."""

    key: str


@dataclass(frozen=True)
class DataMessage:
    """普通数据消息 / Regular data message."""

    body: str | None = None
    timestamp: int | None = None
    quote: Quote | None = None
    reaction: Reaction | None = None
    attachments: tuple[AttachmentPointer, ...] = ()
    group: GroupContext | None = None


@dataclass(frozen=True)
class SentMessage:
    """同步的已发送消息 / A sent message synced from another device."""

    destination: AccountId | None = None
    timestamp: int | None = None
    message: DataMessage | None = None


@dataclass(frozen=True)
class SyncMessage:
    """同步消息 / Sync message."""

    sent: SentMessage | None = None


@dataclass(frozen=True)
class NullMessage:
    """空消息（例如删除） / Null message (for example deleted)."""


@dataclass(frozen=True)
class CallMessage:
    """通话信令 / Call signalling."""

    kind: str = ""


@dataclass(frozen=True)
class TypingMessage:
    """正在输入 / Typing indicator."""

    action: str = ""
    group: GroupContext | None = None


@dataclass(frozen=True)
class OtherContent:
    """无法识别的内容 / Unrecognized content."""

    kind: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


ContentBody = Union[
    DataMessage,
    SyncMessage,
    NullMessage,
    CallMessage,
    TypingMessage,
    OtherContent,
]


@dataclass(frozen=True)
class ProtocolContent:
    """
    协议内容项 - 接收流中的一项
    Protocol content item - one item of the receive stream.
    """

    sender: AccountId
    timestamp: int
    body: ContentBody
    # 传输层附带的资料名（可选）
    sender_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """转为可 JSON 序列化的字典 / Convert to a JSON-serializable dict."""
        return {
            "sender": str(self.sender),
            "timestamp": self.timestamp,
            "sender_name": self.sender_name,
            "kind": type(self.body).__name__,
            "body": _jsonable(asdict(self.body)),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProtocolContent:
        """从字典还原 / Rebuild from a dict."""
        kind = data.get("kind", "")
        body_data = data.get("body") or {}
        return cls(
            sender=uuid.UUID(data["sender"]),
            timestamp=int(data["timestamp"]),
            body=_body_from_dict(kind, body_data),
            sender_name=data.get("sender_name", ""),
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _optional_uuid(value: Any) -> AccountId | None:
    return uuid.UUID(value) if value else None


def _data_message_from_dict(data: dict[str, Any]) -> DataMessage:
    quote = data.get("quote")
    reaction = data.get("reaction")
    group = data.get("group")
    return DataMessage(
        body=data.get("body"),
        timestamp=data.get("timestamp"),
        quote=(
            Quote(
                id=quote.get("id"),
                author=_optional_uuid(quote.get("author")),
                text=quote.get("text"),
            )
            if quote
            else None
        ),
        reaction=(
            Reaction(
                emoji=reaction.get("emoji"),
                target_author=_optional_uuid(reaction.get("target_author")),
                target_sent_timestamp=reaction.get("target_sent_timestamp"),
                is_remove=bool(reaction.get("is_remove", False)),
            )
            if reaction
            else None
        ),
        attachments=tuple(
            AttachmentPointer(**pointer) for pointer in data.get("attachments", [])
        ),
        group=GroupContext(**group) if group else None,
    )


def _body_from_dict(kind: str, data: dict[str, Any]) -> ContentBody:
    if kind == "DataMessage":
        return _data_message_from_dict(data)
    if kind == "SyncMessage":
        sent = data.get("sent")
        if not sent:
            return SyncMessage()
        message = sent.get("message")
        return SyncMessage(
            sent=SentMessage(
                destination=_optional_uuid(sent.get("destination")),
                timestamp=sent.get("timestamp"),
                message=_data_message_from_dict(message) if message else None,
            )
        )
    if kind == "NullMessage":
        return NullMessage()
    if kind == "CallMessage":
        return CallMessage(kind=data.get("kind", ""))
    if kind == "TypingMessage":
        group = data.get("group")
        return TypingMessage(
            action=data.get("action", ""),
            group=GroupContext(**group) if group else None,
        )
    return OtherContent(kind=data.get("kind", kind), raw=data.get("raw", {}))
