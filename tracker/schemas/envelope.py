from typing import Any, Optional

def ok(data: Any = None, message: Optional[str] = None) -> dict:
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body

def fail(message: str, error: Optional[str] = None, details: Optional[dict] = None) -> dict:
    body: dict = {"success": False, "message": message}
    if error:
        body["error"] = error
    if details:
        body["details"] = details
    return body
