"""
Tests for configuration loading and the settings snapshot.
"""

import dataclasses
import json
from urllib.parse import urlsplit

import pytest

from signalrelayer.config.defaults import build_default_config
from signalrelayer.config.manager import ConfigManager


class TestConfigManager:
    """Defaults, file values and environment overrides."""

    def test_defaults_without_file(self, tmp_path):
        manager = ConfigManager(build_default_config(), str(tmp_path / "missing.json"))
        manager.load(environ={})

        settings = manager.snapshot()

        assert settings.grace_seconds == 4.0
        assert settings.receive_drain_timeout == 5.0
        assert settings.queue_maxsize == 0
        assert settings.web_port == 8080
        assert settings.passphrase is None
        assert settings.desktop_notifications is False

    def test_file_values_merge_with_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"web": {"port": 9000}, "relay": {"grace_seconds": 1}}))
        manager = ConfigManager(build_default_config(), str(path))
        manager.load(environ={})

        assert manager.get("web.port") == 9000
        assert manager.get("web.host") == "0.0.0.0"
        assert manager.snapshot().grace_seconds == 1.0

    def test_broken_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        manager = ConfigManager(build_default_config(), str(path))
        manager.load(environ={})

        assert manager.get("web.port") == 8080

    def test_default_endpoints_do_not_collide(self, tmp_path):
        """The relayer's web port must differ from the signal-cli daemon's port."""
        manager = ConfigManager(build_default_config(), str(tmp_path / "missing.json"))
        manager.load(environ={})

        rpc = urlsplit(manager.get("signal_cli.rpc_url"))

        assert rpc.hostname == "127.0.0.1"
        assert rpc.port == 8081
        assert rpc.port != manager.snapshot().web_port

    def test_environment_overrides(self, tmp_path):
        manager = ConfigManager(build_default_config(), str(tmp_path / "none.json"))
        manager.load(
            environ={
                "SIGNAL_RELAYER_DB_PATH": "/var/lib/relay/presage.db",
                "SIGNAL_RELAYER_PASSPHRASE": "hunter2",
                "SIGNAL_RELAYER_API_KEY": "k",
            }
        )

        settings = manager.snapshot()

        assert settings.db_path == "/var/lib/relay/presage.db"
        assert settings.passphrase == "hunter2"
        assert settings.api_key == "k"

    def test_dotted_get_and_set(self):
        manager = ConfigManager({"a": {"b": 1}})
        manager.load(environ={})

        manager.set("a.c.d", 2)

        assert manager.get("a.b") == 1
        assert manager.get("a.c.d") == 2
        assert manager.get("a.x.y", "fallback") == "fallback"

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "conf" / "config.json"
        manager = ConfigManager(build_default_config(), str(path))
        manager.load(environ={})
        manager.set("web.port", 7000)
        manager.save()

        reloaded = ConfigManager(build_default_config(), str(path))
        reloaded.load(environ={})

        assert reloaded.get("web.port") == 7000

    def test_snapshot_is_frozen(self):
        manager = ConfigManager(build_default_config())
        manager.load(environ={})
        settings = manager.snapshot()

        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.grace_seconds = 0
