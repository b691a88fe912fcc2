"""
Web 路由模块 - 消息提交与状态接口
Web routes module - message submission and status endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError
from quart import Quart, jsonify, request

from signalrelayer import __version__
from signalrelayer.errors import QueueClosedError
from signalrelayer.message.event import OutboundRequest
from signalrelayer.web.auth import API_KEY_HEADER, require_api_key

if TYPE_CHECKING:
    from signalrelayer.relay.serializer import RequestSerializer

logger = logging.getLogger(__name__)


class SendMessageBody(BaseModel):
    """要发送的消息 / A message to send."""

    content: str


def build_openapi() -> dict[str, Any]:
    """构建 OpenAPI 文档 / Build the OpenAPI document."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Signal relayer", "version": __version__},
        "tags": [{"name": "signal", "description": "Signal API"}],
        "paths": {
            "/message/{destination}": {
                "post": {
                    "tags": ["signal"],
                    "summary": "Send a message to a destination.",
                    "parameters": [
                        {
                            "name": "destination",
                            "in": "path",
                            "required": True,
                            "description": "The UUID of the destination",
                            "schema": {"type": "string"},
                        }
                    ],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Message"}
                            }
                        },
                    },
                    "responses": {
                        "200": {"description": "Message queued"},
                        "400": {"description": "Invalid request body"},
                        "401": {"description": "Missing or wrong API key"},
                        "500": {"description": "Internal server error"},
                    },
                    "security": [{}, {"api_key": []}],
                }
            }
        },
        "components": {
            "schemas": {"Message": SendMessageBody.model_json_schema()},
            "securitySchemes": {
                "api_key": {"type": "apiKey", "in": "header", "name": API_KEY_HEADER}
            },
        },
    }


def register_message_routes(app: Quart, serializer: RequestSerializer) -> None:
    """注册消息路由 / Register message routes."""

    @app.route("/message/<destination>", methods=["POST"])
    @require_api_key
    async def send(destination: str) -> Any:
        data = await request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "invalid json"}), 400
        try:
            message = SendMessageBody.model_validate(data)
        except ValidationError as exc:
            return jsonify({"error": "invalid body", "detail": exc.errors()}), 400

        logger.info("received message for %s", destination)
        try:
            serializer.submit_nowait(OutboundRequest(destination, message.content))
        except (QueueClosedError, asyncio.QueueFull) as exc:
            logger.error("无法排队消息: %s", exc or type(exc).__name__)
            return jsonify({"error": "queue unavailable"}), 500

        return jsonify({"status": "queued"})


def register_system_routes(app: Quart, serializer: RequestSerializer) -> None:
    """注册系统路由 / Register system routes."""

    @app.route("/health", methods=["GET"])
    async def health() -> Any:
        return jsonify(
            {
                "status": "closed" if serializer.closed else "running",
                "version": __version__,
                **serializer.stats,
            }
        )

    @app.route("/api-docs/openapi.json", methods=["GET"])
    async def openapi() -> Any:
        return jsonify(build_openapi())
