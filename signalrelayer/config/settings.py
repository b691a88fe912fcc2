"""
运行时设置 - 启动时构建一次的不可变配置快照
Runtime settings - immutable configuration snapshot built once at startup.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RelayerSettings:
    """
    中继器设置，传给请求处理器后不再修改
    Relayer settings, never mutated after being handed to the request processor.
    """

    db_path: str
    passphrase: str | None = None
    grace_seconds: float = 4.0
    receive_drain_timeout: float = 5.0
    queue_maxsize: int = 0
    attachments_dir: str = ""
    rpc_timeout: float = 30.0
    desktop_notifications: bool = False
    web_host: str = "0.0.0.0"
    web_port: int = 8080
    api_key: str = ""
    log_level: str = "INFO"
    log_file: str = ""
