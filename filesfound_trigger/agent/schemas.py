"""Agent layer — Wire schemas shared by the agent and its HTTP client."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

HEADER_API_TOKEN = "X-FilesFound-Token"


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    node: str = Field(description="Host name of the machine running the agent.")
    user: str = Field(description="User the agent scans as.")
    uptime_seconds: float


class ScanRequest(BaseModel):
    directory: str = Field(min_length=1)
    include_pattern: str = Field(min_length=1)
    exclude_pattern: str = ""


class ScanResponse(BaseModel):
    exists: bool = Field(description="False when the directory is missing or not a directory.")
    files: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: dict[str, Any] | None = None
    request_id: str | None = None
