"""The ``{success, message, data}`` envelope every endpoint returns."""

from typing import Any


def envelope(message: str, data: Any = None, success: bool = True) -> dict:
    body: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body


def error_envelope(message: str) -> dict:
    return envelope(message, success=False)
