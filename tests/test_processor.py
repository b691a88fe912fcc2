"""
Unit tests for the request processor.
Covers the send path, per-request failures and fatal session errors.
"""

import asyncio
import dataclasses
import time
import uuid

import pytest

from signalrelayer.errors import (
    NotRegisteredError,
    SendError,
    SessionConflictError,
    StoreOpenError,
)
from signalrelayer.message.content import DataMessage, ProtocolContent
from signalrelayer.message.event import OutboundRequest
from signalrelayer.relay import session as session_module
from signalrelayer.relay.attachments import AttachmentFetcher
from signalrelayer.relay.processor import RequestProcessor, now_millis
from tests.conftest import ALICE, FakeStore, ScriptedManager

DESTINATION = "11111111-1111-1111-1111-111111111111"


def build_processor(settings, sink, manager, store=None, **kwargs):
    store = store or FakeStore()

    async def open_store(path, passphrase):
        return store

    async def load_manager(opened):
        assert opened is store
        return manager

    return RequestProcessor(
        settings,
        sink,
        store_opener=open_store,
        manager_loader=load_manager,
        fetcher_factory=lambda m: AttachmentFetcher(m, settings.attachments_dir),
        **kwargs,
    )


class TestSendPath:
    """A healthy session sends exactly once."""

    @pytest.mark.asyncio
    async def test_sends_once_with_timestamp_in_window(self, settings, sink):
        manager = ScriptedManager()
        store = FakeStore()
        processor = build_processor(settings, sink, manager, store)

        before = now_millis()
        ok = await processor.process(OutboundRequest(DESTINATION, "hello"))
        after = now_millis()

        assert ok is True
        assert len(manager.sent) == 1
        destination, body, timestamp = manager.sent[0]
        assert destination == uuid.UUID(DESTINATION)
        assert body == "hello"
        assert before <= timestamp <= after
        assert manager.closed and store.closed
        assert session_module.live_session() is None

    @pytest.mark.asyncio
    async def test_uses_injected_clock(self, settings, sink):
        manager = ScriptedManager()
        processor = build_processor(settings, sink, manager, clock=lambda: 1234)

        await processor.process(OutboundRequest(DESTINATION, "hello"))

        assert manager.sent[0][2] == 1234

    @pytest.mark.asyncio
    async def test_inbound_items_during_grace_window_are_shown(self, settings, sink):
        """Items that arrive before the send are classified."""
        manager = ScriptedManager([ProtocolContent(ALICE, 1, DataMessage(body="hey"))])
        # a small grace window lets the receive loop pull the scripted item
        settings = dataclasses.replace(settings, grace_seconds=0.05)
        processor = build_processor(settings, sink, manager)

        await processor.process(OutboundRequest(DESTINATION, "hello"))

        assert [e.summary for e in sink.events] == ["hey"]
        assert manager.stream_closed

    @pytest.mark.asyncio
    async def test_grace_window_delays_send(self, settings, sink):
        manager = ScriptedManager()
        settings = dataclasses.replace(settings, grace_seconds=0.1)
        processor = build_processor(settings, sink, manager)

        started = time.monotonic()
        await processor.process(OutboundRequest(DESTINATION, "hello"))

        assert time.monotonic() - started >= 0.1


class TestRequestFailures:
    """Request-scoped failures return False and never raise."""

    @pytest.mark.asyncio
    async def test_unparseable_destination(self, settings, sink):
        manager = ScriptedManager()
        store = FakeStore()
        processor = build_processor(settings, sink, manager, store)

        ok = await processor.process(OutboundRequest("not-a-uuid", "hello"))

        assert ok is False
        assert manager.sent == []
        assert manager.closed and store.closed

    @pytest.mark.asyncio
    async def test_send_failure(self, settings, sink):
        manager = ScriptedManager(send_error=SendError("network down"))
        processor = build_processor(settings, sink, manager)

        ok = await processor.process(OutboundRequest(DESTINATION, "hello"))

        assert ok is False
        assert manager.closed

    @pytest.mark.asyncio
    async def test_stream_open_failure_does_not_block_send(self, settings, sink):
        manager = ScriptedManager(open_error=RuntimeError("no stream"))
        processor = build_processor(settings, sink, manager)

        ok = await processor.process(OutboundRequest(DESTINATION, "hello"))

        assert ok is True
        assert len(manager.sent) == 1

    @pytest.mark.asyncio
    async def test_slow_item_is_cancelled_after_drain_timeout(self, settings, sink):
        """An item still being handled after the drain timeout is cancelled."""

        class SlowSink:
            async def notify(self, event):
                await asyncio.sleep(10)

        manager = ScriptedManager([ProtocolContent(ALICE, 1, DataMessage(body="hey"))])
        settings = dataclasses.replace(
            settings, grace_seconds=0.05, receive_drain_timeout=0.05
        )
        processor = build_processor(settings, SlowSink(), manager)

        ok = await asyncio.wait_for(
            processor.process(OutboundRequest(DESTINATION, "hello")), 2.0
        )

        assert ok is True
        assert manager.closed


class TestFatalFailures:
    """Store and manager failures propagate."""

    @pytest.mark.asyncio
    async def test_store_open_failure(self, settings, sink):
        async def open_store(path, passphrase):
            raise OSError("disk on fire")

        async def load_manager(store):
            raise AssertionError("must not be called")

        processor = RequestProcessor(
            settings, sink, store_opener=open_store, manager_loader=load_manager
        )

        with pytest.raises(StoreOpenError):
            await processor.process(OutboundRequest(DESTINATION, "hello"))
        assert session_module.live_session() is None

    @pytest.mark.asyncio
    async def test_manager_not_registered_closes_store(self, settings, sink):
        store = FakeStore()

        async def open_store(path, passphrase):
            return store

        async def load_manager(opened):
            raise NotRegisteredError("no account")

        processor = RequestProcessor(
            settings, sink, store_opener=open_store, manager_loader=load_manager
        )

        with pytest.raises(NotRegisteredError):
            await processor.process(OutboundRequest(DESTINATION, "hello"))
        assert store.closed

    @pytest.mark.asyncio
    async def test_unexpected_manager_error_is_fatal(self, settings, sink):
        async def open_store(path, passphrase):
            return FakeStore()

        async def load_manager(opened):
            raise ValueError("corrupt account")

        processor = RequestProcessor(
            settings, sink, store_opener=open_store, manager_loader=load_manager
        )

        with pytest.raises(NotRegisteredError):
            await processor.process(OutboundRequest(DESTINATION, "hello"))

    @pytest.mark.asyncio
    async def test_second_session_is_refused(self, settings, sink):
        """Opening a session while one is live raises a conflict."""
        inner_error = []

        async def open_store(path, passphrase):
            return FakeStore()

        async def load_manager(store):
            return ScriptedManager()

        async with session_module.open_session("db", None, open_store, load_manager):
            try:
                async with session_module.open_session(
                    "db", None, open_store, load_manager
                ):
                    pass
            except SessionConflictError as exc:
                inner_error.append(exc)

        assert len(inner_error) == 1
        assert session_module.live_session() is None
