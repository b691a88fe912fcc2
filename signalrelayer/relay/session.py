"""
会话 - 存储连接与已认证协议管理器的组合
Session - bundles a store connection and an authenticated protocol manager.

整个进程同一时刻最多只有一个活跃会话。
At most one session is live in the whole process at any instant.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from signalrelayer.errors import (
    FatalRelayError,
    NotRegisteredError,
    SessionConflictError,
    StoreOpenError,
)
from signalrelayer.gateway.base import ProtocolManager

logger = logging.getLogger(__name__)

StoreOpener = Callable[[str, "str | None"], Awaitable[Any]]
ManagerLoader = Callable[[Any], Awaitable[ProtocolManager]]

_live_session: Session | None = None


class Session:
    """
    会话句柄，只在拥有它的请求作用域内可见
    Session handle, only visible inside the owning request's scope.
    """

    def __init__(self, store: Any, manager: ProtocolManager) -> None:
        self.store = store
        self.manager = manager


def live_session() -> Session | None:
    """当前活跃会话 / The currently live session."""
    return _live_session


@asynccontextmanager
async def open_session(
    db_path: str,
    passphrase: str | None,
    store_opener: StoreOpener,
    manager_loader: ManagerLoader,
) -> AsyncIterator[Session]:
    """
    打开会话：存储 -> 协议管理器；退出时按相反顺序关闭
    Open a session: store, then manager; closed in reverse order on exit.

    存储或管理器失败都是致命错误。
    Store or manager failures are fatal.
    """
    global _live_session
    if _live_session is not None:
        raise SessionConflictError("a session is already open")

    try:
        store = await store_opener(db_path, passphrase)
    except FatalRelayError:
        raise
    except Exception as exc:
        raise StoreOpenError(f"failed to open config database: {exc}") from exc

    try:
        manager = await manager_loader(store)
    except (FatalRelayError, asyncio.CancelledError):
        await store.close()
        raise
    except Exception as exc:
        await store.close()
        raise NotRegisteredError(f"failed to load registered manager: {exc}") from exc

    session = Session(store, manager)
    _live_session = session
    try:
        yield session
    finally:
        _live_session = None
        try:
            await manager.close()
        finally:
            await store.close()
