"""
通知模块 - 分类事件的呈现
Notification module - rendering of classified events.
"""

from signalrelayer.notify.base import FanoutSink, NotificationSink
from signalrelayer.notify.console import ConsoleSink
from signalrelayer.notify.desktop import DesktopSink

__all__ = ["NotificationSink", "FanoutSink", "ConsoleSink", "DesktopSink"]
