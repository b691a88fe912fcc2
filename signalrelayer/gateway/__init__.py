"""
网关模块 - 协议管理器
Gateway module - protocol managers.

负责与外部 Signal 协议客户端通信。
Responsible for communicating with the external Signal protocol client.
"""

from signalrelayer.gateway.base import ProtocolManager
from signalrelayer.gateway.envelope import decode_envelope
from signalrelayer.gateway.signal_cli import SignalCliManager

__all__ = ["ProtocolManager", "SignalCliManager", "decode_envelope"]
