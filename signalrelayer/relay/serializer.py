"""
请求序列化器 - 从 FIFO 队列逐个取出出站请求并处理
Request serializer - takes outbound requests from a FIFO queue one at a time.

任意两个请求的会话永不重叠。
No two requests' sessions ever overlap.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from signalrelayer.errors import QueueClosedError
from signalrelayer.message.event import OutboundRequest
from signalrelayer.relay.processor import RequestProcessor

logger = logging.getLogger(__name__)

# 队列关闭标记
_CLOSED = object()


class RequestSerializer:
    """
    请求序列化器 - 单消费者队列，严格按提交顺序处理
    Request serializer - single-consumer queue, processed in submission order.

    队列关闭后，已排队的请求仍会处理完，然后 run() 返回。
    After close(), queued requests still drain, then run() returns.
    """

    def __init__(self, processor: RequestProcessor, maxsize: int = 0) -> None:
        self._processor = processor
        # maxsize 为 0 时队列无界
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._wakeup_queued = False
        self._processed = 0
        self._failed = 0

    @property
    def pending(self) -> int:
        """排队中的请求数 / Number of queued requests."""
        size = self._queue.qsize()
        return size - 1 if self._wakeup_queued else size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stats(self) -> dict[str, int]:
        return {
            "pending": self.pending,
            "processed": self._processed,
            "failed": self._failed,
        }

    def submit_nowait(self, request: OutboundRequest) -> None:
        """
        立即入队；队列满时抛出 asyncio.QueueFull
        Enqueue immediately; raises asyncio.QueueFull when the queue is full.
        """
        if self._closed:
            raise QueueClosedError("request queue is closed")
        self._queue.put_nowait(request)

    async def enqueue(self, request: OutboundRequest) -> None:
        """
        入队；只在队列满时等待
        Enqueue; only waits while the queue is at capacity.
        """
        if self._closed:
            raise QueueClosedError("request queue is closed")
        await self._queue.put(request)

    def close(self) -> None:
        """关闭队列；重复调用无效果 / Close the queue; repeated calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        if self._queue.empty():
            # 唤醒空闲的消费者
            self._queue.put_nowait(_CLOSED)
            self._wakeup_queued = True

    async def run(self) -> None:
        """
        处理请求直到队列关闭并清空；致命错误向上抛出
        Process requests until the queue is closed and drained; fatal errors propagate.
        """
        logger.info("请求序列化器已启动")
        while True:
            if self._closed and self._queue.empty():
                logger.info("请求队列已关闭，序列化器退出")
                return

            item = await self._queue.get()
            if item is _CLOSED:
                self._wakeup_queued = False
                logger.info("请求队列已关闭，序列化器退出")
                return

            logger.debug("处理请求: 目标 %s", item.destination)
            ok = await self._processor.process(item)
            self._processed += 1
            if not ok:
                self._failed += 1
