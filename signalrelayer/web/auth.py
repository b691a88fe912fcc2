"""
API 密钥认证
API key authentication.

配置了 web.api_key 时，请求需携带 signal_apikey 头。
When web.api_key is configured, requests must carry the signal_apikey header.
"""

from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any

from quart import current_app, jsonify, request

API_KEY_HEADER = "signal_apikey"


def check_api_key(expected: str, provided: str | None) -> bool:
    """校验 API 密钥；未配置时总是通过 / Check the API key; passes when unset."""
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def require_api_key(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """认证装饰器 / Authentication decorator."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        expected = current_app.config.get("API_KEY", "")
        if not check_api_key(expected, request.headers.get(API_KEY_HEADER)):
            return jsonify({"error": "unauthorized"}), 401
        return await func(*args, **kwargs)

    return wrapper
