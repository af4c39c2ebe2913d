"""API-facing Pydantic models for the dashboard."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    ok: bool = True


class OkResponse(BaseModel):
    ok: bool = True


class CallSummary(_CamelModel):
    sid: str
    direction: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    status: str | None = None
    duration: int | None = None
    startTime: str | None = None
    endTime: str | None = None


class CallListResponse(BaseModel):
    calls: list[CallSummary]


class IncomingCallResponse(_CamelModel):
    pending: bool
    callSid: str | None = None
    from_: str | None = Field(default=None, alias="from")


class PendingCallItem(_CamelModel):
    callSid: str
    from_: str | None = Field(default=None, alias="from")
    registeredAt: str = Field(description="ISO-8601 time of the first signal for this call.")


class PendingCallsResponse(BaseModel):
    calls: list[PendingCallItem]


class CallDecisionRequest(BaseModel):
    callSid: str | None = None


class CallOutRequest(BaseModel):
    to: str | None = Field(default=None, description="E.164 phone number, e.g. +9230...")


class CallOutResponse(BaseModel):
    sid: str
    status: str | None = None
