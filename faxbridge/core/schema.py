from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmitResponse(BaseModel):
    """Body returned by the remote transport for an accepted fax."""

    model_config = ConfigDict(extra="allow")

    job_uuid: str = Field(min_length=1)
    message: str = ""


class DeliveryDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool | None = None
    result_code: int | str | None = None
    result_text: str | None = None


class DeliveryResult(BaseModel):
    """One entry of a notification callback's ``results`` mapping."""

    model_config = ConfigDict(extra="allow")

    uuid: str | None = None
    call_uuid: str | None = None
    status: str | None = None
    result: DeliveryDetail | None = None

    @property
    def is_terminal(self) -> bool:
        return self.result is not None and self.result.success is not None

    @property
    def succeeded(self) -> bool:
        return bool(self.result and self.result.success)

    def describe(self) -> str:
        if self.result and self.result.result_text:
            return self.result.result_text
        if self.result and self.result.result_code is not None:
            return f"result code {self.result.result_code}"
        return self.status or ""


class NotificationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    results: dict[str, DeliveryResult]
    job_result: dict[str, Any] | None = None


class InboundFaxPayload(BaseModel):
    """Inbound fax delivered by the remote transport."""

    model_config = ConfigDict(extra="allow")

    uuid: str = Field(min_length=1)
    call_uuid: str | None = None
    number: str | None = None
    cidnum: str = ""
    filename: str | None = None
    file_data: str
