"""
请求处理器 - 为单个出站请求管理会话生命周期
Request processor - owns the session lifecycle for one outbound request.

流程 / Flow:
1. 打开会话存储（失败致命） / open the session store (fatal on failure)
2. 加载已注册的协议管理器（失败致命） / load the registered manager (fatal)
3. 解析目标账户（失败只放弃该请求） / parse the destination (request-scoped)
4. 计算时间戳 / compute the timestamp
5. 在同一事件循环上启动接收循环 / start the receive loop on the same loop
6. 等待宽限窗口 / wait the grace window
7. 发送消息（失败只记录） / send (failure is logged)
8. 停止接收循环并关闭会话 / stop the receive loop and close the session
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable

from signalrelayer.config.settings import RelayerSettings
from signalrelayer.errors import DestinationParseError
from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.message.content import AccountId, parse_account_id
from signalrelayer.message.event import OutboundRequest
from signalrelayer.notify.base import NotificationSink
from signalrelayer.relay.attachments import AttachmentFetcher
from signalrelayer.relay.receiver import ReceiveLoop
from signalrelayer.relay.session import ManagerLoader, StoreOpener, open_session

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """当前墙钟毫秒数 / Current wall-clock milliseconds since epoch."""
    return time.time_ns() // 1_000_000


class RequestProcessor:
    """
    请求处理器
    Request processor.

    致命错误（存储、注册）向上抛出；请求级错误记录后返回 False。
    Fatal errors (store, registration) propagate; request errors are logged
    and reported by returning False.
    """

    def __init__(
        self,
        settings: RelayerSettings,
        sink: NotificationSink,
        store_opener: StoreOpener | None = None,
        manager_loader: ManagerLoader | None = None,
        fetcher_factory: Callable[[ProtocolManager], AttachmentFetcher] | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._store_opener = store_opener or _default_store_opener
        self._manager_loader = manager_loader or self._default_manager_loader
        self._fetcher_factory = fetcher_factory or self._default_fetcher
        self._clock = clock

    @property
    def settings(self) -> RelayerSettings:
        return self._settings

    async def process(self, request: OutboundRequest) -> bool:
        """
        处理一个请求，成功发送时返回 True
        Process one request; returns True when the message was sent.
        """
        async with open_session(
            self._settings.db_path,
            self._settings.passphrase,
            self._store_opener,
            self._manager_loader,
        ) as session:
            try:
                destination = parse_account_id(request.destination)
            except DestinationParseError as exc:
                logger.error("请求已放弃: %s", exc)
                return False

            timestamp = self._clock()

            loop = ReceiveLoop(
                session.manager, self._fetcher_factory(session.manager), self._sink
            )
            stop = asyncio.Event()
            receiving = asyncio.create_task(loop.run(stop))
            try:
                await asyncio.sleep(self._settings.grace_seconds)
                return await self._send(session.manager, destination, request, timestamp)
            finally:
                stop.set()
                await self._drain(receiving)

    async def _send(
        self,
        manager: ProtocolManager,
        destination: AccountId,
        request: OutboundRequest,
        timestamp: int,
    ) -> bool:
        try:
            await manager.send_message(destination, request.body, timestamp)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("发送到 %s 失败: %s", request.destination, exc)
            return False

        logger.info("消息已发送到 %s @ %d", destination, timestamp)
        return True

    async def _drain(self, receiving: asyncio.Task[None]) -> None:
        """
        等待接收循环处理完当前条目，超时则取消
        Let the receive loop finish its current item; cancel it on timeout.
        """
        try:
            await asyncio.wait_for(
                asyncio.shield(receiving), self._settings.receive_drain_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "接收循环未在 %.1fs 内结束，已取消",
                self._settings.receive_drain_timeout,
            )
            receiving.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiving
        except asyncio.CancelledError:
            receiving.cancel()
            raise
        except Exception:
            logger.exception("接收循环异常退出")

    async def _default_manager_loader(self, store: object) -> ProtocolManager:
        from signalrelayer.gateway.signal_cli import SignalCliManager

        return await SignalCliManager.load_registered(
            store, timeout=self._settings.rpc_timeout
        )

    def _default_fetcher(self, manager: ProtocolManager) -> AttachmentFetcher:
        return AttachmentFetcher(manager, self._settings.attachments_dir or None)


async def _default_store_opener(path: str, passphrase: str | None) -> object:
    from signalrelayer.store.session_store import SessionStore

    return await SessionStore.open(path, passphrase)
