"""
Tests for notification sinks.
"""

import asyncio

import pytest

from signalrelayer.message.event import ClassifiedEvent, Direction
from signalrelayer.message.thread import ContactThread
from signalrelayer.notify.base import FanoutSink
from signalrelayer.notify.console import ConsoleSink
from signalrelayer.notify.desktop import DesktopSink
from tests.conftest import ALICE, RecordingSink


def event():
    return ClassifiedEvent(
        direction=Direction.RECEIVED,
        thread=ContactThread(ALICE),
        summary="hi",
        timestamp=1,
        prefix=f"From {ALICE} @ 1: ",
    )


class FakeNotifier:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.sent.append(kwargs)


class TestConsoleSink:
    @pytest.mark.asyncio
    async def test_prints_one_line(self, capsys):
        await ConsoleSink().notify(event())

        assert capsys.readouterr().out == f"From {ALICE} @ 1:  / hi\n"


class TestDesktopSink:
    @pytest.mark.asyncio
    async def test_title_is_prefix_and_body_is_summary(self):
        notifier = FakeNotifier()

        await DesktopSink(notifier=notifier).notify(event())

        sent = notifier.sent[0]
        assert sent["title"] == f"From {ALICE} @ 1: "
        assert sent["message"] == "hi"
        assert sent["icon"].name == "presage"

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self):
        await DesktopSink(notifier=FakeNotifier(RuntimeError("no dbus"))).notify(event())


class TestFanoutSink:
    @pytest.mark.asyncio
    async def test_one_broken_sink_does_not_block_others(self):
        class Broken:
            async def notify(self, event):
                raise RuntimeError("broken")

        first, last = RecordingSink(), RecordingSink()

        await FanoutSink([first, Broken(), last]).notify(event())

        assert len(first.events) == 1
        assert len(last.events) == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        class Cancelled:
            async def notify(self, event):
                raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await FanoutSink([Cancelled()]).notify(event())
