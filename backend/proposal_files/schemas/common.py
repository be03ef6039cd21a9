"""Shared response envelope: `{success, data, message?}`."""
from typing import Any, Optional


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body
