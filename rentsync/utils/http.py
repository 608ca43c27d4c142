"""Helpers shared by the serverless API handlers."""

import asyncio
import json
from typing import Any, Coroutine


def json_response(status_code: int, body: Any) -> dict:
    """Build a serverless JSON response."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str)
    }


def run_async(coro: Coroutine) -> Any:
    """Run a coroutine to completion on the handler's event loop."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = None

    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

    return loop.run_until_complete(coro)


def parse_flag(value: Any) -> bool:
    """Form and JSON flags arrive as booleans or as 'true'/'false' strings."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def parse_json_body(request: dict) -> Any:
    """Request body as JSON; pre-parsed bodies are passed through."""
    body = request.get("body")
    if body is None or body == "":
        return {}
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        return json.loads(body)
    return body
