"""Request models and the response envelope of the session API.

Every response is ``{success, timestamp, data?, message?}``. Success payloads
go in ``data``, which is omitted when empty; errors carry ``message``.
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from accessilist.utils.time_provider import now_seconds


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class InstantiateRequest(_Body):
    """Body of ``POST /api/instantiate``."""

    session_key: str = Field(alias="sessionKey", max_length=64)
    type_slug: str = Field(alias="typeSlug", max_length=64)
    state: dict[str, Any] | None = None


class SaveRequest(_Body):
    """Body of ``POST /api/save``.

    Unknown top-level fields (including a legacy ``type``) are dropped.
    """

    session_key: str = Field(alias="sessionKey", max_length=64)
    type_slug: str = Field(alias="typeSlug", max_length=64)
    timestamp: int | None = None
    metadata: dict[str, Any] | None = None
    state: dict[str, Any]

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "sessionKey": self.session_key,
            "typeSlug": self.type_slug,
            "state": self.state,
        }
        if self.timestamp is not None:
            document["timestamp"] = self.timestamp
        if self.metadata:
            document["metadata"] = self.metadata
        return document


class Envelope(BaseModel):
    """Response envelope (documentation model)."""

    success: bool
    timestamp: int
    data: Any | None = None
    message: str | None = None


def success_response(payload: Any = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "timestamp": now_seconds()}
    if payload:
        body["data"] = payload
    return JSONResponse(status_code=status_code, content=body)


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "timestamp": now_seconds(),
        **extra,
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)
