"""
路径工具 - 管理中继器的文件路径
Path utility - manages relayer file paths.
"""

from __future__ import annotations

import os


def get_data_path() -> str:
    """获取数据目录路径 / Get data directory path."""
    return os.environ.get("SIGNAL_RELAYER_DATA_PATH", "data")


def get_config_file() -> str:
    """获取默认配置文件路径 / Get the default config file path."""
    return os.path.join(get_data_path(), "config", "relayer_config.json")
