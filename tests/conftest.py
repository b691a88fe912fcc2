"""
Shared fakes for the relayer tests: in-memory lookups, a scripted protocol
manager and a recording notification sink.
"""

from __future__ import annotations

import asyncio
import uuid

import pytest

from signalrelayer.config.settings import RelayerSettings
from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.message.content import AttachmentPointer, ProtocolContent
from signalrelayer.notify.base import NotificationSink
from signalrelayer.store.session_store import ContactRecord, GroupRecord

ALICE = uuid.UUID("a1a1a1a1-0000-4000-8000-000000000001")
BOB = uuid.UUID("b0b0b0b0-0000-4000-8000-000000000002")
SELF = uuid.UUID("5e1f5e1f-0000-4000-8000-000000000003")


class FakeLookups:
    """In-memory contacts, groups and message history."""

    def __init__(self):
        self.contacts = {}
        self.groups = {}
        self.messages = {}

    def add_contact(self, account, name):
        self.contacts[account] = ContactRecord(uuid=account, name=name)

    def add_group(self, key, title):
        self.groups[key] = GroupRecord(key=key, title=title)

    def add_message(self, thread, content):
        self.messages[(thread.kind, thread.key, content.timestamp)] = content

    async def contact_by_id(self, account):
        return self.contacts.get(account)

    async def group(self, key):
        return self.groups.get(key)

    async def message(self, thread, timestamp):
        return self.messages.get((thread.kind, thread.key, timestamp))


class ScriptedManager(ProtocolManager):
    """
    Protocol manager that yields a fixed list of items.

    With ``endless=True`` the stream blocks after the scripted items, like a
    live connection with no more traffic.
    """

    def __init__(
        self,
        items=(),
        lookups=None,
        endless=True,
        open_error=None,
        send_error=None,
        attachments=None,
        item_delay=0.0,
    ):
        self.items = list(items)
        self.lookups = lookups or FakeLookups()
        self.endless = endless
        self.open_error = open_error
        self.send_error = send_error
        self.attachments = attachments or {}
        self.item_delay = item_delay
        self.sent = []
        self.yielded = 0
        self.closed = False
        self.stream_closed = False

    async def receive_messages(self):
        if self.open_error is not None:
            raise self.open_error
        return self._stream()

    async def _stream(self):
        try:
            for item in self.items:
                if self.item_delay:
                    await asyncio.sleep(self.item_delay)
                self.yielded += 1
                yield item
            if self.endless:
                await asyncio.Event().wait()
        finally:
            self.stream_closed = True

    async def send_message(self, destination, body, timestamp):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((destination, body, timestamp))

    async def get_attachment(self, pointer: AttachmentPointer) -> bytes:
        data = self.attachments.get(pointer.id)
        if data is None:
            raise KeyError(pointer.id)
        return data

    async def contact_by_id(self, account):
        return await self.lookups.contact_by_id(account)

    async def group(self, key):
        return await self.lookups.group(key)

    async def message(self, thread, timestamp) -> ProtocolContent | None:
        return await self.lookups.message(thread, timestamp)

    async def close(self):
        self.closed = True


class RecordingSink(NotificationSink):
    """Collects every event it is handed."""

    def __init__(self):
        self.events = []

    async def notify(self, event):
        self.events.append(event)

    @property
    def lines(self):
        return [str(event) for event in self.events]


class FakeStore:
    """Stand-in for the session store used by the processor tests."""

    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def lookups():
    return FakeLookups()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings(tmp_path):
    return RelayerSettings(
        db_path=str(tmp_path / "presage.db"),
        grace_seconds=0.0,
        receive_drain_timeout=0.5,
        attachments_dir=str(tmp_path / "attachments"),
    )
