"""
Unit tests for decoding signal-cli JSON envelopes.
"""

from signalrelayer.gateway.envelope import decode_envelope
from signalrelayer.message.content import (
    CallMessage,
    DataMessage,
    NullMessage,
    OtherContent,
    SyncMessage,
    TypingMessage,
)
from tests.conftest import ALICE, BOB


def envelope(**content):
    return {
        "source": "+15550001",
        "sourceNumber": "+15550001",
        "sourceUuid": str(ALICE),
        "sourceName": "Alice",
        "timestamp": 1700000000000,
        **content,
    }


class TestDecodeEnvelope:
    """signal-cli envelope to ProtocolContent."""

    def test_plain_data_message(self):
        item = decode_envelope(
            envelope(dataMessage={"timestamp": 1700000000000, "message": "hi"})
        )

        assert item.sender == ALICE
        assert item.sender_name == "Alice"
        assert item.timestamp == 1700000000000
        assert item.body == DataMessage(body="hi", timestamp=1700000000000)

    def test_quote_reaction_group_and_attachments(self):
        item = decode_envelope(
            envelope(
                dataMessage={
                    "message": "sure",
                    "quote": {"id": 10, "authorUuid": str(BOB), "text": "lunch?"},
                    "reaction": {
                        "emoji": "👍",
                        "targetAuthorUuid": str(BOB),
                        "targetSentTimestamp": 10,
                        "isRemove": False,
                    },
                    "attachments": [
                        {
                            "id": "abc",
                            "contentType": "image/png",
                            "filename": "cat.png",
                            "size": 42,
                        }
                    ],
                    "groupInfo": {"groupId": "grp=="},
                }
            )
        )

        body = item.body
        assert body.quote.author == BOB
        assert body.quote.text == "lunch?"
        assert body.reaction.target_sent_timestamp == 10
        assert body.attachments[0].id == "abc"
        assert body.attachments[0].content_type == "image/png"
        assert body.group.key == "grp=="

    def test_sync_sent_message(self):
        item = decode_envelope(
            envelope(
                syncMessage={
                    "sentMessage": {
                        "destinationUuid": str(BOB),
                        "timestamp": 5,
                        "message": "yo",
                    }
                }
            )
        )

        assert isinstance(item.body, SyncMessage)
        assert item.body.sent.destination == BOB
        assert item.body.sent.message.body == "yo"

    def test_sync_without_sent_message(self):
        item = decode_envelope(envelope(syncMessage={"readMessages": []}))

        assert item.body == SyncMessage()

    def test_simple_kinds(self):
        assert isinstance(decode_envelope(envelope(nullMessage={})).body, NullMessage)
        call = decode_envelope(envelope(callMessage={"offerMessage": {}})).body
        assert call == CallMessage(kind="offerMessage")
        typing = decode_envelope(envelope(typingMessage={"action": "STARTED"})).body
        assert typing == TypingMessage(action="STARTED")

    def test_receipt_is_other_content(self):
        item = decode_envelope(envelope(receiptMessage={"isDelivery": True}))

        assert isinstance(item.body, OtherContent)
        assert item.body.kind == "receiptMessage"

    def test_missing_sender_is_dropped(self):
        raw = envelope(dataMessage={"message": "hi"})
        del raw["sourceUuid"]

        assert decode_envelope(raw) is None
