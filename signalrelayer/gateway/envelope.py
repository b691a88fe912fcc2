"""
信封解码 - 将 signal-cli 的 JSON 信封转换为 ProtocolContent
Envelope decoding - converts signal-cli JSON envelopes into ProtocolContent.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

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
)

logger = logging.getLogger(__name__)

# 按顺序检查的内容键 / Content keys, checked in order
_CONTENT_KEYS = (
    "dataMessage",
    "syncMessage",
    "nullMessage",
    "callMessage",
    "typingMessage",
    "receiptMessage",
    "storyMessage",
)


def _uuid_or_none(value: Any) -> AccountId | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _group_context(data: dict[str, Any]) -> GroupContext | None:
    group_info = data.get("groupInfo") or {}
    group_id = group_info.get("groupId") or data.get("groupId")
    return GroupContext(key=group_id) if group_id else None


def decode_data_message(data: dict[str, Any]) -> DataMessage:
    """解码 dataMessage / Decode a dataMessage object."""
    quote = data.get("quote")
    reaction = data.get("reaction")
    return DataMessage(
        body=data.get("message"),
        timestamp=data.get("timestamp"),
        quote=(
            Quote(
                id=quote.get("id"),
                author=_uuid_or_none(quote.get("authorUuid")),
                text=quote.get("text"),
            )
            if quote
            else None
        ),
        reaction=(
            Reaction(
                emoji=reaction.get("emoji"),
                target_author=_uuid_or_none(reaction.get("targetAuthorUuid")),
                target_sent_timestamp=reaction.get("targetSentTimestamp"),
                is_remove=bool(reaction.get("isRemove", False)),
            )
            if reaction
            else None
        ),
        attachments=tuple(
            AttachmentPointer(
                id=str(item.get("id", "")),
                content_type=item.get("contentType"),
                filename=item.get("filename"),
                size=item.get("size"),
            )
            for item in data.get("attachments") or []
        ),
        group=_group_context(data),
    )


def _decode_body(envelope: dict[str, Any]) -> ContentBody:
    for key in _CONTENT_KEYS:
        if key not in envelope or envelope[key] is None:
            continue
        data = envelope[key]

        if key == "dataMessage":
            return decode_data_message(data)
        if key == "syncMessage":
            sent = data.get("sentMessage")
            if sent is None:
                return SyncMessage()
            return SyncMessage(
                sent=SentMessage(
                    destination=_uuid_or_none(sent.get("destinationUuid")),
                    timestamp=sent.get("timestamp"),
                    message=decode_data_message(sent),
                )
            )
        if key == "nullMessage":
            return NullMessage()
        if key == "callMessage":
            kind = next(iter(data), "") if isinstance(data, dict) else ""
            return CallMessage(kind=kind)
        if key == "typingMessage":
            return TypingMessage(
                action=data.get("action", ""),
                group=_group_context(data),
            )
        return OtherContent(kind=key, raw=data if isinstance(data, dict) else {})

    return OtherContent(kind="unknown")


def decode_envelope(envelope: dict[str, Any]) -> ProtocolContent | None:
    """
    解码一个信封；缺少发送者 UUID 时返回 None
    Decode one envelope; returns None when the sender UUID is missing.
    """
    sender = _uuid_or_none(envelope.get("sourceUuid"))
    if sender is None:
        logger.warning("信封缺少发送者 UUID，已丢弃")
        return None

    return ProtocolContent(
        sender=sender,
        timestamp=int(envelope.get("timestamp") or 0),
        body=_decode_body(envelope),
        sender_name=envelope.get("sourceName") or "",
    )
