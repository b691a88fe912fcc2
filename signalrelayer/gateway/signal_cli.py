"""
signal-cli 协议管理器 - 通过 HTTP 模式的 signal-cli 守护进程收发消息
signal-cli protocol manager - talks to a signal-cli daemon in HTTP mode.

JSON-RPC 请求发送到 /api/v1/rpc，入站信封通过 /api/v1/events 的 SSE 推送。
JSON-RPC calls go to /api/v1/rpc; inbound envelopes arrive as SSE from /api/v1/events.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import itertools
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp

from signalrelayer.errors import (
    NotRegisteredError,
    ProtocolError,
    SendError,
    ThreadDerivationError,
)
from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.gateway.envelope import decode_envelope
from signalrelayer.message.content import (
    AccountId,
    AttachmentPointer,
    DataMessage,
    ProtocolContent,
    SyncMessage,
)
from signalrelayer.message.thread import (
    ContactThread,
    GroupThread,
    Thread,
    thread_from_content,
)
from signalrelayer.store.session_store import (
    AccountRecord,
    ContactRecord,
    GroupRecord,
    SessionStore,
)

logger = logging.getLogger(__name__)


class SignalCliManager(ProtocolManager):
    """
    signal-cli 协议管理器
    signal-cli protocol manager.
    """

    def __init__(
        self,
        store: SessionStore,
        account: AccountRecord,
        http: aiohttp.ClientSession | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._store = store
        self._account = account
        self._http = http or aiohttp.ClientSession()
        self._timeout = timeout
        self._ids = itertools.count(1)
        # 附件 ID -> getAttachment 所需的会话参数
        self._attachment_owner: dict[str, dict[str, Any]] = {}

    @classmethod
    async def load_registered(
        cls, store: SessionStore, **kwargs: Any
    ) -> SignalCliManager:
        """
        从存储加载已注册账户；未注册时抛出 NotRegisteredError
        Load the registered account from the store; raises NotRegisteredError.
        """
        account = await store.load_account()
        if account is None:
            raise NotRegisteredError("no registered account in store")

        manager = cls(store, account, **kwargs)
        await manager._refresh_directory()
        return manager

    @property
    def account(self) -> AccountRecord:
        return self._account

    @property
    def _base_url(self) -> str:
        return self._account.rpc_url.rstrip("/")

    async def close(self) -> None:
        await self._http.close()

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    async def _call(self, method: str, **params: Any) -> Any:
        """
        调用 JSON-RPC 方法
        Call a JSON-RPC method.
        """
        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": {"account": self._account.number, **params},
            "id": next(self._ids),
        }
        try:
            async with self._http.post(
                f"{self._base_url}/api/v1/rpc",
                json=request,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    raise ProtocolError(f"{method}: HTTP {resp.status}")
                reply = await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise ProtocolError(f"{method}: {exc}") from exc

        error = reply.get("error")
        if error:
            raise ProtocolError(
                f"{method}: {error.get('message', 'unknown error')}",
                code=error.get("code"),
            )
        return reply.get("result")

    async def _refresh_directory(self) -> None:
        """
        从 signal-cli 同步联系人和群组名称（失败不致命）
        Sync contact and group names from signal-cli (failure is not fatal).
        """
        try:
            groups = await self._call("listGroups") or []
            for group in groups:
                if group.get("id"):
                    await self._store.upsert_group(group["id"], group.get("name") or "")
            contacts = await self._call("listContacts") or []
            for contact in contacts:
                if not contact.get("uuid"):
                    continue
                profile = contact.get("profile") or {}
                name = contact.get("name") or profile.get("givenName") or ""
                await self._store.upsert_contact(
                    AccountId(contact["uuid"]), name, contact.get("number") or ""
                )
        except (ProtocolError, ValueError):
            logger.warning("同步联系人和群组失败", exc_info=True)

    # ------------------------------------------------------------------
    # ProtocolManager
    # ------------------------------------------------------------------

    async def receive_messages(self) -> AsyncIterator[ProtocolContent]:
        try:
            resp = await self._http.get(
                f"{self._base_url}/api/v1/events",
                params={"account": self._account.number},
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self._timeout),
            )
        except aiohttp.ClientError as exc:
            raise ProtocolError(f"failed to open event stream: {exc}") from exc

        if resp.status != 200:
            resp.release()
            raise ProtocolError(f"failed to open event stream: HTTP {resp.status}")

        return self._iter_events(resp)

    async def _iter_events(
        self, resp: aiohttp.ClientResponse
    ) -> AsyncIterator[ProtocolContent]:
        """逐条解析 SSE 事件 / Parse SSE events one by one."""
        data_lines: list[str] = []
        try:
            async for raw_line in resp.content:
                line = raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
                if line.startswith("data:"):
                    data_lines.append(line[5:].lstrip())
                    continue
                if line or not data_lines:
                    continue

                payload = "\n".join(data_lines)
                data_lines = []
                try:
                    content = await self._accept(payload)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    # 单个事件失败只跳过该事件
                    logger.warning("处理 signal-cli 事件失败，已跳过", exc_info=True)
                    continue
                if content is not None:
                    yield content
        finally:
            resp.release()

    async def _accept(self, payload: str) -> ProtocolContent | None:
        """
        解码并持久化一个事件
        Decode and persist one event.
        """
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("收到无效的 signal-cli JSON 数据")
            return None

        envelope = event.get("envelope") if isinstance(event, dict) else None
        if not envelope:
            return None

        content = decode_envelope(envelope)
        if content is None:
            return None

        if content.sender_name:
            await self._store.upsert_contact(
                content.sender, content.sender_name, envelope.get("sourceNumber") or ""
            )

        try:
            thread = thread_from_content(content)
        except ThreadDerivationError:
            return content

        if isinstance(content.body, DataMessage):
            owner = (
                {"groupId": thread.key}
                if isinstance(thread, GroupThread)
                else {"recipient": [str(content.sender)]}
            )
            for pointer in content.body.attachments:
                self._attachment_owner[pointer.id] = owner
            await self._store.save_message(thread, content)
        elif isinstance(content.body, SyncMessage) and content.body.sent is not None:
            sent = content.body.sent
            if sent.message is not None:
                # 以自身账户为发送者保存，便于表情回应查找原消息
                own = ProtocolContent(
                    sender=self._account.uuid,
                    timestamp=sent.timestamp or content.timestamp,
                    body=sent.message,
                )
                await self._store.save_message(thread, own)

        return content

    async def send_message(
        self, destination: AccountId, body: str, timestamp: int
    ) -> None:
        try:
            result = await self._call(
                "send", recipient=[str(destination)], message=body
            )
        except ProtocolError as exc:
            raise SendError(f"send to {destination} failed: {exc}") from exc
        # 表情回应引用的是 signal-cli 分配的时间戳，两个时间戳都保存
        stamps = [timestamp]
        server_ts = result.get("timestamp") if isinstance(result, dict) else None
        if isinstance(server_ts, int) and server_ts != timestamp:
            logger.debug("signal-cli 使用时间戳 %d (请求 %d)", server_ts, timestamp)
            stamps.append(server_ts)

        thread = ContactThread(account=destination)
        for stamp in stamps:
            sent = ProtocolContent(
                sender=self._account.uuid,
                timestamp=stamp,
                body=DataMessage(body=body, timestamp=stamp),
            )
            await self._store.save_message(thread, sent)

    async def get_attachment(self, pointer: AttachmentPointer) -> bytes:
        owner = self._attachment_owner.get(pointer.id, {})
        result = await self._call("getAttachment", id=pointer.id, **owner)
        data = result.get("data") if isinstance(result, dict) else result
        if not isinstance(data, str):
            raise ProtocolError(f"getAttachment: no data for {pointer.id}")
        try:
            return base64.b64decode(data)
        except binascii.Error as exc:
            raise ProtocolError(f"getAttachment: invalid data for {pointer.id}") from exc

    async def contact_by_id(self, account: AccountId) -> ContactRecord | None:
        return await self._store.contact_by_id(account)

    async def group(self, key: str) -> GroupRecord | None:
        return await self._store.group(key)

    async def message(self, thread: Thread, timestamp: int) -> ProtocolContent | None:
        return await self._store.message(thread, timestamp)
