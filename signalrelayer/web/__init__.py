"""
Web 模块 - HTTP 消息提交
Web module - HTTP message submission.
"""

from signalrelayer.web.app import WebApplication, create_app

__all__ = ["WebApplication", "create_app"]
