"""
Tests for the command line interface.
"""

import asyncio
import json

from click.testing import CliRunner

from signalrelayer import __version__
from signalrelayer.cli.main import cli
from signalrelayer.store.session_store import SessionStore
from tests.conftest import SELF


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(cli, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_writes_default_config(self, tmp_path):
        path = tmp_path / "config" / "relayer.json"

        result = CliRunner().invoke(cli, ["init", "--config", str(path)])

        assert result.exit_code == 0
        data = json.loads(path.read_text())
        assert data["relay"]["grace_seconds"] == 4.0
        assert data["signal_cli"]["rpc_url"] == "http://127.0.0.1:8081"
        assert "daemon --http 127.0.0.1:8081" in result.output

    def test_init_keeps_existing_file_when_declined(self, tmp_path):
        path = tmp_path / "relayer.json"
        path.write_text("{}")

        result = CliRunner().invoke(cli, ["init", "--config", str(path)], input="n\n")

        assert result.exit_code == 0
        assert path.read_text() == "{}"

    def test_bind_records_account(self, tmp_path):
        db_path = str(tmp_path / "presage.db")

        result = CliRunner().invoke(
            cli,
            [
                "bind",
                "--config", str(tmp_path / "none.json"),
                "--db-path", db_path,
                "--number", "+15550003",
                "--uuid", str(SELF),
                "--rpc-url", "http://signal-cli:8080",
            ],
        )

        assert result.exit_code == 0, result.output

        async def load():
            async with await SessionStore.open(db_path) as store:
                return await store.load_account()

        account = asyncio.run(load())
        assert account.number == "+15550003"
        assert account.uuid == SELF
        assert account.rpc_url == "http://signal-cli:8080"

    def test_bind_rejects_bad_uuid(self, tmp_path):
        result = CliRunner().invoke(
            cli,
            [
                "bind",
                "--db-path", str(tmp_path / "presage.db"),
                "--number", "+15550003",
                "--uuid", "nope",
            ],
        )

        assert result.exit_code == 2
