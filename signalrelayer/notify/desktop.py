"""
桌面通知接收器 - 通过 desktop-notifier 显示系统通知
Desktop sink - shows system notifications through desktop-notifier.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from signalrelayer.message.event import ClassifiedEvent
from signalrelayer.notify.base import NotificationSink

logger = logging.getLogger(__name__)

ICON_NAME = "presage"


class DesktopSink(NotificationSink):
    """
    桌面通知接收器
    Desktop notification sink.

    标题为事件前缀，正文为事件摘要。
    The title is the event prefix, the body is the event summary.
    """

    def __init__(self, app_name: str = "signal-relayer", notifier: Any = None) -> None:
        self._app_name = app_name
        self._notifier = notifier

    def _get_notifier(self) -> Any:
        if self._notifier is None:
            from desktop_notifier import DesktopNotifier

            self._notifier = DesktopNotifier(app_name=self._app_name)
        return self._notifier

    async def notify(self, event: ClassifiedEvent) -> None:
        try:
            from desktop_notifier import Icon

            notifier = self._get_notifier()
            await notifier.send(
                title=event.prefix,
                message=event.summary,
                icon=Icon(name=ICON_NAME),
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("failed to display desktop notification: %s", exc)
