"""
默认配置 - 中继器的所有默认配置值
Default configuration - all default configuration values of the relayer.
"""

from __future__ import annotations

import os
from typing import Any

from signalrelayer.utils.paths import get_data_path


def build_default_config() -> dict[str, Any]:
    """
    构建默认配置
    Build the default configuration.
    """
    return {
        # 会话存储
        "store": {
            "db_path": os.path.join(get_data_path(), "presage.db"),
            "passphrase": "",
        },
        # 请求处理
        "relay": {
            "grace_seconds": 4.0,
            "receive_drain_timeout": 5.0,
            "queue_maxsize": 0,
            "attachments_dir": "",
        },
        # signal-cli 守护进程
        "signal_cli": {
            # 与 web.port 不同端口: signal-cli daemon --http 127.0.0.1:8081
            "rpc_url": "http://127.0.0.1:8081",
            "timeout": 30.0,
        },
        # 通知
        "notifications": {
            "desktop": False,
        },
        # Web 服务
        "web": {
            "host": "0.0.0.0",
            "port": 8080,
            "api_key": "",
        },
        # 日志
        "logging": {
            "level": "INFO",
            "file": "",
        },
    }
