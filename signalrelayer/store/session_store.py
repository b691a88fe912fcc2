"""
会话存储 - 账户、联系人、群组和消息历史的持久化
Session store - persistence for the account, contacts, groups and message history.

同一时刻只允许一个进程内打开一个存储实例（基于文件锁）。
Only one open store instance is allowed at a time (file lock based).
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from signalrelayer.errors import StoreOpenError
from signalrelayer.message.content import AccountId, ProtocolContent
from signalrelayer.message.thread import Thread
from signalrelayer.store.engine import StorageEngine
from signalrelayer.store.models import Account, Contact, Group, StoredMessage

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


@dataclass(frozen=True)
class AccountRecord:
    """已绑定的 signal-cli 账户 / A bound signal-cli account."""

    number: str
    uuid: AccountId
    rpc_url: str
    device_name: str = ""


@dataclass(frozen=True)
class ContactRecord:
    """联系人 / Contact."""

    uuid: AccountId
    name: str = ""


@dataclass(frozen=True)
class GroupRecord:
    """群组 / Group."""

    key: str
    title: str = ""


def _digest(passphrase: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", passphrase.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS
    ).hex()


class SessionStore:
    """
    会话存储
    Session store.

    使用 `await SessionStore.open(path, passphrase)` 打开，
    使用 `close()` 或 `async with` 释放。
    Open with `await SessionStore.open(path, passphrase)`,
    release with `close()` or `async with`.
    """

    def __init__(self, engine: StorageEngine, passphrase: str) -> None:
        self._engine = engine
        self._passphrase = passphrase

    @classmethod
    async def open(cls, path: str, passphrase: str | None = None) -> SessionStore:
        """
        打开存储；失败时抛出 StoreOpenError
        Open the store; raises StoreOpenError on failure.
        """
        store = cls(await StorageEngine.open(path), passphrase or "")
        try:
            await store._verify_passphrase()
        except SQLAlchemyError as exc:
            await store.close()
            raise StoreOpenError(f"failed to open store {path}: {exc}") from exc
        except StoreOpenError:
            await store.close()
            raise

        logger.debug("会话存储已打开: %s", path)
        return store

    async def close(self) -> None:
        """关闭并释放锁 / Close and release the lock."""
        await self._engine.close()

    @property
    def is_open(self) -> bool:
        return self._engine.is_open

    async def __aenter__(self) -> SessionStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _verify_passphrase(self) -> None:
        async with self._engine.session() as session:
            account = (await session.execute(select(Account))).scalars().first()
        if account is None or not account.passphrase_salt:
            return
        expected = _digest(self._passphrase, account.passphrase_salt)
        if not hmac.compare_digest(expected, account.passphrase_digest):
            raise StoreOpenError("wrong passphrase for store")

    # ------------------------------------------------------------------
    # 账户 / Account
    # ------------------------------------------------------------------

    async def save_account(self, record: AccountRecord) -> None:
        """保存（替换）已绑定账户 / Save (replace) the bound account."""
        salt = secrets.token_hex(16)
        async with self._engine.session() as session:
            for existing in (await session.execute(select(Account))).scalars():
                await session.delete(existing)
            session.add(
                Account(
                    number=record.number,
                    uuid=str(record.uuid),
                    rpc_url=record.rpc_url,
                    device_name=record.device_name,
                    passphrase_salt=salt,
                    passphrase_digest=_digest(self._passphrase, salt),
                )
            )
            await session.commit()
        logger.info("账户已绑定: %s (%s)", record.number, record.uuid)

    async def load_account(self) -> AccountRecord | None:
        """读取已绑定账户 / Load the bound account."""
        async with self._engine.session() as session:
            account = (await session.execute(select(Account))).scalars().first()
        if account is None:
            return None
        return AccountRecord(
            number=account.number,
            uuid=uuid.UUID(account.uuid),
            rpc_url=account.rpc_url,
            device_name=account.device_name,
        )

    # ------------------------------------------------------------------
    # 查询 / Lookups
    # ------------------------------------------------------------------

    async def contact_by_id(self, account: AccountId) -> ContactRecord | None:
        """按 ID 查询联系人 / Look up a contact by id."""
        async with self._engine.session() as session:
            stmt = select(Contact).where(Contact.uuid == str(account))
            contact = (await session.execute(stmt)).scalar_one_or_none()
        if contact is None:
            return None
        return ContactRecord(uuid=account, name=contact.name)

    async def group(self, key: str) -> GroupRecord | None:
        """按群组密钥查询群组 / Look up a group by key."""
        async with self._engine.session() as session:
            stmt = select(Group).where(Group.key == key)
            group = (await session.execute(stmt)).scalar_one_or_none()
        if group is None:
            return None
        return GroupRecord(key=group.key, title=group.title)

    async def message(self, thread: Thread, timestamp: int) -> ProtocolContent | None:
        """按线程和时间戳查询消息 / Look up a message by thread and timestamp."""
        async with self._engine.session() as session:
            stmt = select(StoredMessage).where(
                StoredMessage.thread_kind == thread.kind,
                StoredMessage.thread_key == thread.key,
                StoredMessage.timestamp == timestamp,
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        try:
            return ProtocolContent.from_dict(json.loads(row.payload))
        except (ValueError, KeyError, TypeError):
            logger.warning("无法解析存储的消息 %s @ %d", thread, timestamp)
            return None

    # ------------------------------------------------------------------
    # 写入 / Writes
    # ------------------------------------------------------------------

    async def upsert_contact(
        self, account: AccountId, name: str = "", number: str = ""
    ) -> None:
        """新增或更新联系人 / Insert or update a contact."""
        async with self._engine.session() as session:
            stmt = select(Contact).where(Contact.uuid == str(account))
            contact = (await session.execute(stmt)).scalar_one_or_none()
            if contact is None:
                session.add(Contact(uuid=str(account), name=name, number=number))
            else:
                if name:
                    contact.name = name
                if number:
                    contact.number = number
            await session.commit()

    async def upsert_group(self, key: str, title: str) -> None:
        """新增或更新群组 / Insert or update a group."""
        async with self._engine.session() as session:
            stmt = select(Group).where(Group.key == key)
            group = (await session.execute(stmt)).scalar_one_or_none()
            if group is None:
                session.add(Group(key=key, title=title))
            else:
                group.title = title
            await session.commit()

    async def save_message(self, thread: Thread, content: ProtocolContent) -> None:
        """
        保存消息（同一线程同一时间戳覆盖）
        Save a message, replacing one with the same thread and timestamp.
        """
        payload = json.dumps(content.to_dict(), ensure_ascii=False)
        async with self._engine.session() as session:
            stmt = select(StoredMessage).where(
                StoredMessage.thread_kind == thread.kind,
                StoredMessage.thread_key == thread.key,
                StoredMessage.timestamp == content.timestamp,
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                session.add(
                    StoredMessage(
                        thread_kind=thread.kind,
                        thread_key=thread.key,
                        timestamp=content.timestamp,
                        sender=str(content.sender),
                        payload=payload,
                    )
                )
            else:
                row.sender = str(content.sender)
                row.payload = payload
            await session.commit()
