"""
Shared response envelope and request fragments for the API routes.

Every response body is ``{"status": "success"|"error", "data"?, "message"?,
"results"?}``.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


def success(data: Any = None, *, message: Optional[str] = None, results: Optional[int] = None) -> dict:
    body: dict[str, Any] = {"status": "success"}
    if message is not None:
        body["message"] = message
    if results is not None:
        body["results"] = results
    body["data"] = data
    return body


def success_list(items: list) -> dict:
    return success(items, results=len(items))


def error(message: str, **extra: Any) -> dict:
    body: dict[str, Any] = {"status": "error", "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body
