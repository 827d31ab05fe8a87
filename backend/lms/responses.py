"""Response envelope shared by every route: `{success, message, data}`."""

from typing import Any, Optional


def ok(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "message": message, "data": data}


def fail(message: str, error: Optional[dict] = None) -> dict:
    body = {"success": False, "message": message, "data": None}
    if error is not None:
        body["error"] = error
    return body
