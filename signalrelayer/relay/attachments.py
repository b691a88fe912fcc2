"""
附件获取器 - 下载附件并保存到临时目录
Attachment fetcher - downloads attachments and saves them to a scratch directory.

文件名格式: presage-<原始名或时间戳>.<扩展名>
File name format: presage-<original-or-generated-name>.<ext>
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from datetime import datetime

from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.message.content import (
    AccountId,
    AttachmentPointer,
    DataMessage,
    ProtocolContent,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "bin"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
ATTACHMENTS_DIR_PREFIX = "presage-attachments"

# MIME 类型 -> 扩展名列表（取第一个）
MIME_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "application/octet-stream": ("bin",),
    "application/pdf": ("pdf",),
    "application/json": ("json",),
    "application/zip": ("zip",),
    "application/gzip": ("gz",),
    "application/msword": ("doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ("docx",),
    "application/vnd.ms-excel": ("xls",),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ("xlsx",),
    "application/vnd.oasis.opendocument.text": ("odt",),
    "application/x-signal-view-once": ("bin",),
    "audio/aac": ("aac",),
    "audio/mp4": ("m4a", "mp4a"),
    "audio/mpeg": ("mp3", "mpga", "m2a"),
    "audio/ogg": ("ogg", "oga", "opus"),
    "audio/wav": ("wav",),
    "audio/webm": ("weba",),
    "image/bmp": ("bmp",),
    "image/gif": ("gif",),
    "image/heic": ("heic",),
    "image/jpeg": ("jpg", "jpeg", "jpe"),
    "image/png": ("png",),
    "image/svg+xml": ("svg", "svgz"),
    "image/tiff": ("tiff", "tif"),
    "image/webp": ("webp",),
    "text/csv": ("csv",),
    "text/html": ("html", "htm"),
    "text/plain": ("txt", "text", "conf", "log"),
    "text/x-signal-plain": ("txt",),
    "video/3gpp": ("3gp",),
    "video/mp4": ("mp4", "mp4v", "mpg4"),
    "video/mpeg": ("mpeg", "mpg", "mpe"),
    "video/quicktime": ("mov", "qt"),
    "video/webm": ("webm",),
}

_process_dir: str | None = None


def process_attachments_dir() -> str:
    """
    获取进程级的附件临时目录（首次调用时创建）
    Get the process-scoped attachments directory (created on first use).
    """
    global _process_dir
    if _process_dir is None:
        _process_dir = tempfile.mkdtemp(prefix=ATTACHMENTS_DIR_PREFIX)
        logger.info("attachments will be stored in %s", _process_dir)
    return _process_dir


def extension_for(content_type: str | None) -> str:
    """
    由 MIME 类型推导扩展名，未知时为 bin
    Derive the extension from a MIME type; unknown types give "bin".
    """
    mime = (content_type or DEFAULT_CONTENT_TYPE).split(";", 1)[0].strip().lower()
    extensions = MIME_EXTENSIONS.get(mime)
    if not extensions:
        return DEFAULT_EXTENSION
    return extensions[0]


def fallback_name(now: datetime | None = None) -> str:
    """
    无文件名时按本地时间生成名字（%Y-%m-%d-%H-%M-%s）
    Generate a name from local time when none was supplied.
    """
    now = now or datetime.now()
    return f"{now.strftime('%Y-%m-%d-%H-%M-')}{int(now.timestamp())}"


def attachment_filename(pointer: AttachmentPointer, now: datetime | None = None) -> str:
    """生成附件文件名 / Build the attachment file name."""
    name = os.path.basename(pointer.filename) if pointer.filename else ""
    if not name:
        name = fallback_name(now)
    return f"presage-{name}.{extension_for(pointer.content_type)}"


def _write_file(file_path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(file_path), exist_ok=True)
    with open(file_path, "wb") as f:
        f.write(data)


class AttachmentFetcher:
    """
    附件获取器
    Attachment fetcher.

    获取或写入失败只记录日志，不向上抛出。
    Fetch or write failures are logged, never raised.
    """

    def __init__(self, manager: ProtocolManager, directory: str | None = None) -> None:
        self._manager = manager
        self._directory = directory or process_attachments_dir()

    @property
    def directory(self) -> str:
        return self._directory

    async def fetch_all(self, content: ProtocolContent) -> list[str]:
        """
        保存数据消息中的所有附件，返回已写入的路径
        Save every attachment of a data message; returns the written paths.
        """
        if not isinstance(content.body, DataMessage):
            return []

        saved = []
        for pointer in content.body.attachments:
            path = await self.fetch(pointer, content.sender)
            if path is not None:
                saved.append(path)
        return saved

    async def fetch(self, pointer: AttachmentPointer, sender: AccountId) -> str | None:
        """获取并保存单个附件 / Fetch and save one attachment."""
        try:
            data = await self._manager.get_attachment(pointer)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("failed to fetch attachment %s", pointer.id, exc_info=True)
            return None

        file_path = os.path.join(self._directory, attachment_filename(pointer))
        try:
            # 文件写入放到线程中，避免阻塞事件循环
            await asyncio.to_thread(_write_file, file_path, data)
        except OSError as exc:
            logger.error(
                "failed to write attachment from %s to %s: %s", sender, file_path, exc
            )
            return None

        logger.info("saved attachment from %s to %s", sender, file_path)
        return file_path
