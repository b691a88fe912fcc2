"""
数据模型 - 会话存储的表结构
Data models - table structures of the session store.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signalrelayer.store.engine import Base


class Account(Base):
    """已注册账户表（单行） / Registered account table (single row)."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(32))
    uuid: Mapped[str] = mapped_column(String(36))
    rpc_url: Mapped[str] = mapped_column(String(255))
    device_name: Mapped[str] = mapped_column(String(100), default="")
    passphrase_salt: Mapped[str] = mapped_column(String(64), default="")
    passphrase_digest: Mapped[str] = mapped_column(String(128), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class Contact(Base):
    """联系人表 / Contact table."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    number: Mapped[str] = mapped_column(String(32), default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


class Group(Base):
    """群组表 / Group table."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(255), default="")


class StoredMessage(Base):
    """消息历史表 / Message history table."""

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("thread_kind", "thread_key", "timestamp", name="uq_thread_ts"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_kind: Mapped[str] = mapped_column(String(16))
    thread_key: Mapped[str] = mapped_column(String(128), index=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True)
    sender: Mapped[str] = mapped_column(String(36))
    # ProtocolContent.to_dict() 的 JSON
    payload: Mapped[str] = mapped_column(Text, default="{}")
