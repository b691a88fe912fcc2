"""
控制台接收器 - 每个事件输出一行
Console sink - prints one line per event.
"""

from __future__ import annotations

import click

from signalrelayer.message.event import ClassifiedEvent
from signalrelayer.notify.base import NotificationSink


class ConsoleSink(NotificationSink):
    """控制台接收器 / Console sink."""

    def __init__(self, err: bool = False) -> None:
        self._err = err

    async def notify(self, event: ClassifiedEvent) -> None:
        click.echo(str(event), err=self._err)
