"""
中继核心 - 请求序列化与事件分类引擎
Relay core - request serialization and event classification engine.
"""

from signalrelayer.relay.attachments import AttachmentFetcher, extension_for
from signalrelayer.relay.classifier import classify
from signalrelayer.relay.processor import RequestProcessor
from signalrelayer.relay.receiver import ReceiveLoop
from signalrelayer.relay.serializer import RequestSerializer
from signalrelayer.relay.session import Session, live_session, open_session

__all__ = [
    "AttachmentFetcher",
    "extension_for",
    "classify",
    "RequestProcessor",
    "ReceiveLoop",
    "RequestSerializer",
    "Session",
    "live_session",
    "open_session",
]
