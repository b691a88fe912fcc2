"""
CLI 主入口 - 使用 Click 框架
CLI main entry - using Click framework.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import uuid

import click

from signalrelayer.config.defaults import build_default_config
from signalrelayer.config.manager import ConfigManager
from signalrelayer.utils.paths import get_config_file

logger = logging.getLogger("signalrelayer.cli")


def load_config(config_path: str | None) -> ConfigManager:
    """读取配置文件并应用环境变量 / Load the config file and environment."""
    manager = ConfigManager(build_default_config(), config_path or get_config_file())
    manager.load()
    return manager


@click.group()
def cli() -> None:
    """signal-relayer - 通过 HTTP 转发消息到 Signal 并显示收到的消息"""
    pass


@cli.command()
@click.option("--config", "config_path", default=None, help="配置文件路径")
@click.option("--db-path", default=None, help="会话存储数据库路径")
@click.option("--passphrase", default=None, help="会话存储口令")
@click.option("--host", default=None, help="Web 服务监听地址")
@click.option("--port", default=None, type=int, help="Web 服务端口")
@click.option("--notifications", is_flag=True, help="显示桌面通知")
@click.option("--log-level", default=None, help="日志级别 (DEBUG, INFO, ...)")
def start(
    config_path: str | None,
    db_path: str | None,
    passphrase: str | None,
    host: str | None,
    port: int | None,
    notifications: bool,
    log_level: str | None,
) -> None:
    """启动中继器 / Start the relayer."""
    from signalrelayer.errors import FatalRelayError
    from signalrelayer.kernel.bootstrap import Bootstrap
    from signalrelayer.kernel.logging import setup_logging

    config = load_config(config_path)
    overrides = {
        "store.db_path": db_path,
        "store.passphrase": passphrase,
        "web.host": host,
        "web.port": port,
        "notifications.desktop": True if notifications else None,
        "logging.level": log_level,
    }
    for key, value in overrides.items():
        if value is not None:
            config.set(key, value)

    settings = config.snapshot()
    setup_logging(settings.log_level, settings.log_file or None)
    logger.info("正在启动 signal-relayer...")

    bootstrap = Bootstrap(settings)

    async def main() -> None:
        await bootstrap.start()
        await bootstrap.run_forever()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("收到键盘中断信号")
    except FatalRelayError as exc:
        logger.critical("致命错误: %s", exc)
        sys.exit(1)
    except Exception:
        logger.exception("致命错误")
        sys.exit(1)


@cli.command()
@click.option("--config", "config_path", default=None, help="配置文件路径")
@click.option("--number", required=True, help="已注册的电话号码")
@click.option("--uuid", "account_uuid", required=True, help="账户 UUID")
@click.option(
    "--rpc-url", default=None, help="signal-cli HTTP 守护进程地址 (默认 http://127.0.0.1:8081)"
)
@click.option("--device-name", default="", help="设备名称")
@click.option("--db-path", default=None, help="会话存储数据库路径")
@click.option("--passphrase", default=None, help="会话存储口令")
def bind(
    config_path: str | None,
    number: str,
    account_uuid: str,
    rpc_url: str | None,
    device_name: str,
    db_path: str | None,
    passphrase: str | None,
) -> None:
    """绑定已在 signal-cli 注册的账户 / Bind an account registered with signal-cli."""
    from signalrelayer.errors import RelayError
    from signalrelayer.store.session_store import AccountRecord, SessionStore

    try:
        parsed = uuid.UUID(account_uuid)
    except ValueError:
        raise click.BadParameter(
            f"不是有效的 UUID: {account_uuid}", param_hint="--uuid"
        ) from None

    config = load_config(config_path)
    record = AccountRecord(
        number=number,
        uuid=parsed,
        rpc_url=rpc_url or str(config.get("signal_cli.rpc_url")),
        device_name=device_name,
    )
    path = db_path or str(config.get("store.db_path"))
    secret = passphrase if passphrase is not None else config.get("store.passphrase")

    async def save() -> None:
        store = await SessionStore.open(path, secret or None)
        async with store:
            await store.save_account(record)

    try:
        asyncio.run(save())
    except RelayError as exc:
        click.echo(f"绑定失败: {exc}", err=True)
        sys.exit(1)

    click.echo(f"账户已绑定: {number} ({parsed}) -> {record.rpc_url}")


@cli.command()
@click.option("--config", "config_path", default=None, help="配置文件路径")
def init(config_path: str | None) -> None:
    """初始化配置 / Initialize configuration."""
    config_path = config_path or get_config_file()
    os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)

    if os.path.exists(config_path):
        click.echo(f"配置文件已存在: {config_path}")
        if not click.confirm("是否覆盖?"):
            return

    config = build_default_config()
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, ensure_ascii=False, indent=2)

    click.echo(f"配置文件已创建: {config_path}")
    click.echo(
        f"signal-cli 守护进程地址: {config['signal_cli']['rpc_url']} "
        "(启动方式: signal-cli daemon --http 127.0.0.1:8081)"
    )


@cli.command()
def version() -> None:
    """显示版本信息 / Show version info."""
    from signalrelayer import __app_name__, __version__

    click.echo(f"{__app_name__} v{__version__}")


def run_cli(args: list[str] | None = None) -> int:
    """运行 CLI 并返回退出码 / Run the CLI and return its exit code."""
    try:
        cli.main(args=args, prog_name="signal-relayer", standalone_mode=False)
    except click.exceptions.Abort:
        click.echo("已取消", err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1
    return 0


if __name__ == "__main__":
    cli()
