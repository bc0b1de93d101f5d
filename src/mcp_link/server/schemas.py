"""Pydantic schemas for the local JSON routes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from .. import __version__


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: dict[str, object] | list[object] | str | None = None


class ErrorResponse(BaseModel):
    error: ErrorInfo


def default_endpoints() -> dict[str, str]:
    return {
        "sse": "/sse",
        "message": "/message",
        "connect-api": "/connect-api",
    }


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    service: str = "MCP Link Server"
    version: str = __version__
    endpoints: dict[str, str] = Field(default_factory=default_endpoints)
    description: str = "Convert Any OpenAPI V3 API to MCP Server"


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
