"""
Signal 中继 - 将 HTTP 提交的消息转发到 Signal
Signal relayer - relays HTTP-submitted messages into Signal.
"""

__app_name__ = "signal-relayer"
__version__ = "0.1.0"
