"""
内核模块 - 日志与启动引导
Kernel module - logging and bootstrap.
"""

from signalrelayer.kernel.bootstrap import Bootstrap, build_sink
from signalrelayer.kernel.logging import setup_logging

__all__ = ["Bootstrap", "build_sink", "setup_logging"]
