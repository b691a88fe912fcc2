"""
配置管理器 - 读取和合并配置
Config manager - reads and merges configuration.

使用 JSON 文件存储，支持默认值合并、嵌套键访问和环境变量覆盖。
Uses JSON file storage with default merging, nested key access and
environment overrides.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from signalrelayer.config.settings import RelayerSettings

logger = logging.getLogger(__name__)

# 环境变量 -> 配置键
ENV_OVERRIDES = {
    "SIGNAL_RELAYER_DB_PATH": "store.db_path",
    "SIGNAL_RELAYER_PASSPHRASE": "store.passphrase",
    "SIGNAL_RELAYER_RPC_URL": "signal_cli.rpc_url",
    "SIGNAL_RELAYER_API_KEY": "web.api_key",
}


class ConfigManager:
    """
    配置管理器 - 中继器的配置中心
    Config manager - the configuration center of the relayer.

    支持：
    - 嵌套键访问（如 "web.port"）
    - 默认值自动合并
    - 环境变量覆盖
    """

    def __init__(
        self,
        defaults: dict[str, Any] | None = None,
        config_path: str | None = None,
    ) -> None:
        self._defaults = defaults or {}
        self._config: dict[str, Any] = {}
        self._config_path = config_path

    @property
    def config_path(self) -> str | None:
        return self._config_path

    def load(self, environ: dict[str, str] | None = None) -> None:
        """
        加载配置文件并应用环境变量
        Load the configuration file and apply environment overrides.
        """
        self._config = {}
        if self._config_path and os.path.exists(self._config_path):
            try:
                with open(self._config_path, encoding="utf-8") as f:
                    self._config = json.load(f)
                logger.info("配置已从 %s 加载", self._config_path)
            except (json.JSONDecodeError, OSError):
                logger.warning("加载配置失败，使用默认值")
                self._config = {}
        elif self._config_path:
            logger.info("未找到配置文件 %s，使用默认值", self._config_path)

        # 合并默认值
        self._merge_defaults(self._config, self._defaults)

        environ = os.environ if environ is None else environ
        for env_key, config_key in ENV_OVERRIDES.items():
            if environ.get(env_key):
                self.set(config_key, environ[env_key])

    def save(self) -> None:
        """
        保存配置到文件
        Save configuration to file.
        """
        if not self._config_path:
            return
        os.makedirs(os.path.dirname(self._config_path) or ".", exist_ok=True)
        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(self._config, f, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值（支持嵌套键，如 "web.port"）
        Get config value (supports nested keys like "web.port").
        """
        keys = key.split(".")
        current = self._config
        for k in keys:
            if isinstance(current, dict):
                current = current.get(k)
            else:
                return default
            if current is None:
                return default
        return current

    def set(self, key: str, value: Any) -> None:
        """
        设置配置值（支持嵌套键）
        Set config value (supports nested keys).
        """
        keys = key.split(".")
        current = self._config
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value

    def as_dict(self) -> dict[str, Any]:
        """获取完整配置字典 / Get the full config dictionary."""
        return dict(self._config)

    def snapshot(self) -> RelayerSettings:
        """
        构建不可变设置快照
        Build the immutable settings snapshot.
        """
        return RelayerSettings(
            db_path=str(self.get("store.db_path", "")),
            passphrase=self.get("store.passphrase") or None,
            grace_seconds=float(self.get("relay.grace_seconds", 4.0)),
            receive_drain_timeout=float(self.get("relay.receive_drain_timeout", 5.0)),
            queue_maxsize=int(self.get("relay.queue_maxsize", 0)),
            attachments_dir=str(self.get("relay.attachments_dir", "")),
            rpc_timeout=float(self.get("signal_cli.timeout", 30.0)),
            desktop_notifications=bool(self.get("notifications.desktop", False)),
            web_host=str(self.get("web.host", "0.0.0.0")),
            web_port=int(self.get("web.port", 8080)),
            api_key=str(self.get("web.api_key", "")),
            log_level=str(self.get("logging.level", "INFO")),
            log_file=str(self.get("logging.file", "")),
        )

    def _merge_defaults(self, config: dict[str, Any], defaults: dict[str, Any]) -> None:
        """
        递归合并默认值到配置中（不覆盖已有值）
        Recursively merge defaults into config (does not overwrite existing).
        """
        for key, default_value in defaults.items():
            if key not in config:
                config[key] = default_value
            elif isinstance(default_value, dict) and isinstance(config[key], dict):
                self._merge_defaults(config[key], default_value)
