"""
通知接收器基类
Notification sink base.

通知失败只记录日志，从不向上传播。
Notification failures are logged, never propagated.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from signalrelayer.message.event import ClassifiedEvent

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """通知接收器 / Notification sink."""

    @abstractmethod
    async def notify(self, event: ClassifiedEvent) -> None:
        """呈现一个分类事件 / Render one classified event."""
        ...


class FanoutSink(NotificationSink):
    """
    扇出接收器 - 将事件交给多个接收器，彼此隔离
    Fan-out sink - hands each event to several sinks, isolated from each other.
    """

    def __init__(self, sinks: Iterable[NotificationSink]) -> None:
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    async def notify(self, event: ClassifiedEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.notify(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("通知接收器 %s 出错", type(sink).__name__)
