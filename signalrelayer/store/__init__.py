"""
存储层模块 - 会话存储
Store module - the session store.

使用 SQLAlchemy + aiosqlite 提供异步数据库访问。
Uses SQLAlchemy + aiosqlite for async database access.
"""

from signalrelayer.store.engine import StorageEngine
from signalrelayer.store.session_store import (
    AccountRecord,
    ContactRecord,
    GroupRecord,
    SessionStore,
)

__all__ = [
    "StorageEngine",
    "SessionStore",
    "AccountRecord",
    "ContactRecord",
    "GroupRecord",
]
