"""
配置模块 - 管理中继器配置
Config module - manages relayer configuration.
"""

from signalrelayer.config.defaults import build_default_config
from signalrelayer.config.manager import ConfigManager
from signalrelayer.config.settings import RelayerSettings

__all__ = ["ConfigManager", "RelayerSettings", "build_default_config"]
