# Request/response schemas for the gateway API.
# Created: 2026-10-19

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class APIResponse(BaseModel):
    """Base response wrapper."""

    model_config = {"from_attributes": True}


class ErrorResponse(APIResponse):
    error: str


class RootResponse(APIResponse):
    ok: bool = True
    connected: bool


class StatusResponse(APIResponse):
    connected: bool
    phoneNumber: str | None = None


class QRResponse(APIResponse):
    """Either ``qr`` or ``error`` is set, never both."""

    qr: str | None = None
    error: str | None = None


class SendRequest(BaseModel):
    phone: str = Field(..., min_length=1)
    message: str

    @field_validator("phone", mode="before")
    @classmethod
    def _strip_phone(cls, v):
        # A blank phone would otherwise become a bare "@s.whatsapp.net"
        return v.strip() if isinstance(v, str) else v


class SendResponse(APIResponse):
    success: bool = True


class SessionStartResponse(APIResponse):
    started: bool
    error: str | None = None
