"""
Web 应用 - 基于 Quart 的消息提交服务
Web application - Quart-based message submission service.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from quart import Quart

from signalrelayer.web.routes import register_message_routes, register_system_routes

if TYPE_CHECKING:
    from signalrelayer.relay.serializer import RequestSerializer

logger = logging.getLogger(__name__)


def create_app(serializer: RequestSerializer, api_key: str = "") -> Quart:
    """创建 Quart 应用 / Create the Quart app."""
    app = Quart("signalrelayer")
    app.config["API_KEY"] = api_key
    register_message_routes(app, serializer)
    register_system_routes(app, serializer)
    return app


class WebApplication:
    """
    Web 应用 - 提供消息提交 API
    Web application - provides the message submission API.
    """

    def __init__(
        self,
        serializer: RequestSerializer,
        host: str = "0.0.0.0",
        port: int = 8080,
        api_key: str = "",
    ) -> None:
        self._host = host
        self._port = port
        self._app = create_app(serializer, api_key)

    @property
    def app(self) -> Quart:
        return self._app

    async def run(
        self, shutdown_trigger: Callable[..., Awaitable[None]] | None = None
    ) -> None:
        """启动服务器 / Start server."""
        from hypercorn.asyncio import serve
        from hypercorn.config import Config

        config = Config()
        config.bind = [f"{self._host}:{self._port}"]
        config.accesslog = logging.getLogger("signalrelayer.web.access")

        logger.info("Web 服务运行在 http://%s:%d", self._host, self._port)
        await serve(self._app, config, shutdown_trigger=shutdown_trigger)
