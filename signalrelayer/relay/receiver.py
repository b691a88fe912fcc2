"""
接收循环 - 拉取入站内容流，分类并保存附件
Receive loop - pulls the inbound content stream, classifies items and saves attachments.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from signalrelayer.errors import ThreadDerivationError
from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.message.content import ProtocolContent
from signalrelayer.message.thread import thread_from_content
from signalrelayer.notify.base import NotificationSink
from signalrelayer.relay.attachments import AttachmentFetcher
from signalrelayer.relay.classifier import classify

logger = logging.getLogger(__name__)


class ReceiveLoop:
    """
    接收循环
    Receive loop.

    只在条目之间响应停止请求，正在处理的条目会完成。
    Stop requests are honoured between items; an item being handled finishes.
    """

    def __init__(
        self,
        manager: ProtocolManager,
        fetcher: AttachmentFetcher,
        sink: NotificationSink,
    ) -> None:
        self._manager = manager
        self._fetcher = fetcher
        self._sink = sink
        self.handled = 0

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """
        运行直到流结束或收到停止请求；打开流失败只记录日志
        Run until the stream ends or a stop is requested; stream open errors are logged.
        """
        stop = stop or asyncio.Event()
        try:
            messages = await self._manager.receive_messages()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "error while receiving stuff: failed to initialize messages stream: %s",
                exc,
            )
            return

        try:
            while not stop.is_set():
                content = await self._next(messages, stop)
                if content is None:
                    break
                await self.handle(content)
        finally:
            aclose = getattr(messages, "aclose", None)
            if aclose is not None:
                with contextlib.suppress(Exception):
                    await aclose()

    async def _next(
        self, messages: AsyncIterator[ProtocolContent], stop: asyncio.Event
    ) -> ProtocolContent | None:
        """等待下一条内容或停止请求 / Wait for the next item or a stop request."""
        pull = asyncio.ensure_future(messages.__anext__())
        stopped = asyncio.ensure_future(stop.wait())
        try:
            done, _ = await asyncio.wait(
                {pull, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stopped.cancel()

        if pull not in done:
            pull.cancel()
            with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                await pull
            return None

        try:
            return pull.result()
        except StopAsyncIteration:
            logger.debug("接收流已结束")
            return None
        except Exception as exc:
            logger.error("error while receiving stuff: %s", exc)
            return None

    async def handle(self, content: ProtocolContent) -> None:
        """
        处理单条内容；失败只影响该条
        Handle one item; a failure only affects that item.
        """
        try:
            thread = thread_from_content(content)
        except ThreadDerivationError:
            logger.warning("failed to derive thread from content")
            return

        try:
            event = await classify(content, thread, self._manager)
            if event is not None:
                await self._sink.notify(event)
            await self._fetcher.fetch_all(content)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "处理入站内容失败 (%s @ %d)", content.sender, content.timestamp
            )
        finally:
            self.handled += 1
