"""
存储引擎 - 独占锁定的 SQLite 数据库
Storage engine - an exclusively locked SQLite database.

数据库文件旁边的 `<path>.lock` 在引擎打开期间被 flock 独占，
第二个打开者立即失败而不是等待。
`<path>.lock` next to the database file is held with an exclusive flock for
as long as the engine is open; a second opener fails immediately.
"""

from __future__ import annotations

import fcntl
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from signalrelayer.errors import StoreOpenError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy 声明式基类 / SQLAlchemy declarative base."""

    pass


def _acquire_lock(db_path: str) -> int:
    lock_path = f"{db_path}.lock"
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o600)
    except OSError as exc:
        raise StoreOpenError(f"cannot create lock {lock_path}: {exc}") from exc

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as exc:
        os.close(fd)
        raise StoreOpenError(f"store {db_path} is already open") from exc
    return fd


class StorageEngine:
    """
    存储引擎
    Storage engine.

    只能通过 `await StorageEngine.open(path)` 创建；`close()` 释放连接和锁。
    Only created through `await StorageEngine.open(path)`; `close()` releases
    both the connections and the lock.
    """

    def __init__(self, db_path: str, engine: AsyncEngine, lock_fd: int) -> None:
        self._db_path = db_path
        self._engine = engine
        self._lock_fd: int | None = lock_fd
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    async def open(cls, db_path: str) -> StorageEngine:
        """
        加锁、连接并建表；失败时抛出 StoreOpenError 且不留下锁
        Lock, connect and create tables. Raises StoreOpenError and leaves no
        lock behind on failure.
        """
        try:
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        except OSError as exc:
            raise StoreOpenError(f"cannot create directory for {db_path}: {exc}") from exc

        lock_fd = _acquire_lock(db_path)
        engine = cls(db_path, create_async_engine(f"sqlite+aiosqlite:///{db_path}"), lock_fd)
        try:
            async with engine._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            await engine.close()
            raise StoreOpenError(f"failed to open store {db_path}: {exc}") from exc

        logger.debug("数据库已打开: %s", db_path)
        return engine

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._lock_fd is not None

    def session(self) -> AsyncSession:
        """
        获取一个数据库会话
        Get a database session.
        """
        if self._lock_fd is None:
            raise StoreOpenError(f"store {self._db_path} is closed")
        return self._session_factory()

    async def close(self) -> None:
        """关闭连接并释放锁，可重复调用 / Dispose and unlock; safe to repeat."""
        if self._lock_fd is None:
            return
        try:
            await self._engine.dispose()
        finally:
            fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
            os.close(self._lock_fd)
            self._lock_fd = None
            logger.debug("数据库已关闭: %s", self._db_path)
