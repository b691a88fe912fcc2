"""
启动引导器 - 中继器的生命周期管理
Bootstrap - relayer lifecycle management.

负责按正确顺序启动各子系统，并管理关闭流程。
Responsible for starting all subsystems in the correct order
and managing the shutdown process.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import Any

from signalrelayer.config.settings import RelayerSettings
from signalrelayer.notify.base import FanoutSink, NotificationSink
from signalrelayer.notify.console import ConsoleSink
from signalrelayer.relay.processor import RequestProcessor
from signalrelayer.relay.serializer import RequestSerializer

logger = logging.getLogger(__name__)


def build_sink(settings: RelayerSettings) -> NotificationSink:
    """根据设置构建通知接收器 / Build the notification sink from settings."""
    sinks: list[NotificationSink] = [ConsoleSink()]
    if settings.desktop_notifications:
        from signalrelayer.notify.desktop import DesktopSink

        sinks.append(DesktopSink())
    return FanoutSink(sinks)


class Bootstrap:
    """
    引导器 - 编排中继器的启动和关闭
    Bootstrap - orchestrates the startup and shutdown of the relayer.

    启动顺序：
    1. 构建通知接收器
    2. 构建请求处理器和序列化器
    3. 启动序列化器
    4. 启动 Web 服务
    """

    def __init__(
        self,
        settings: RelayerSettings,
        sink: NotificationSink | None = None,
        processor: RequestProcessor | None = None,
        serve_web: bool = True,
    ) -> None:
        self.settings = settings
        self.sink = sink or build_sink(settings)
        self.processor = processor or RequestProcessor(settings, self.sink)
        self.serializer = RequestSerializer(
            self.processor, maxsize=settings.queue_maxsize
        )
        self._serve_web = serve_web
        self._shutdown_event = asyncio.Event()
        self._serializer_task: asyncio.Task[None] | None = None
        self._tasks: list[asyncio.Task[Any]] = []

    async def start(self) -> None:
        """
        启动中继器
        Start the relayer.
        """
        logger.info("Signal 中继器正在启动...")

        self._serializer_task = asyncio.create_task(self.serializer.run())

        if self._serve_web:
            from signalrelayer.web.app import WebApplication

            web_app = WebApplication(
                self.serializer,
                host=self.settings.web_host,
                port=self.settings.web_port,
                api_key=self.settings.api_key,
            )
            web_task = asyncio.create_task(
                web_app.run(shutdown_trigger=self._shutdown_event.wait)
            )
            self._tasks.append(web_task)

        logger.info("Signal 中继器启动成功")

    async def run_forever(self) -> None:
        """
        持续运行直到收到关闭信号或序列化器因致命错误退出
        Run until a shutdown signal arrives or the serializer stops on a fatal error.
        """
        loop = asyncio.get_running_loop()

        # 注册系统信号（仅 Unix）
        if sys.platform != "win32":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self.request_shutdown)

        assert self._serializer_task is not None, "start() must be called first"
        waiter = asyncio.create_task(self._shutdown_event.wait())
        try:
            await asyncio.wait(
                {waiter, self._serializer_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            await self.shutdown()

        # 序列化器异常退出时把致命错误交给调用方
        if self._serializer_task.done() and not self._serializer_task.cancelled():
            exc = self._serializer_task.exception()
            if exc is not None:
                raise exc

    def request_shutdown(self) -> None:
        """请求关闭 / Ask run_forever() to shut down."""
        logger.info("收到关闭请求")
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """
        优雅关闭：关闭队列，等待进行中的请求，然后停止 Web 服务
        Graceful shutdown: close the queue, wait for in-flight work, stop the web service.
        """
        logger.info("Signal 中继器正在关闭...")
        self.serializer.close()
        self._shutdown_event.set()

        if self._serializer_task is not None and not self._serializer_task.done():
            budget = (
                self.settings.grace_seconds + self.settings.receive_drain_timeout + 5.0
            )
            try:
                await asyncio.wait_for(asyncio.shield(self._serializer_task), budget)
            except asyncio.TimeoutError:
                logger.warning(
                    "仍有 %d 个请求未处理，强制停止", self.serializer.pending
                )
                self._serializer_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._serializer_task
            except Exception:
                # 致命错误由 run_forever 重新抛出
                logger.debug("序列化器已异常退出", exc_info=True)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        logger.info("Signal 中继器已完全关闭")
