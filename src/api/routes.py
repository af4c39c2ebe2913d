"""Dashboard-facing JSON API: call list, pending calls, decisions, outbound calls."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_callback_urls, get_orchestrator, get_registry
from api.schemas import (
    CallDecisionRequest,
    CallListResponse,
    CallOutRequest,
    CallOutResponse,
    CallSummary,
    HealthResponse,
    IncomingCallResponse,
    OkResponse,
    PendingCallItem,
    PendingCallsResponse,
)
from calls.orchestrator import CallOrchestrator
from calls.registry import PendingCallRegistry
from calls.signals import CallbackUrls

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _pick(body_value: str | None, query_value: str | None) -> str | None:
    value = body_value if body_value is not None else query_value
    return value.strip() if isinstance(value, str) else None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/calls", response_model=CallListResponse)
async def list_calls(
    limit: str | None = Query(default=None),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> CallListResponse:
    records = await orchestrator.recent_calls(limit)
    return CallListResponse(
        calls=[
            CallSummary(
                sid=record.sid,
                direction=record.direction,
                from_=record.from_number,
                to=record.to_number,
                status=record.status,
                duration=record.duration,
                startTime=record.start_time,
                endTime=record.end_time,
            )
            for record in records
        ]
    )


@router.get(
    "/incoming-call",
    response_model=IncomingCallResponse,
    response_model_exclude_unset=True,
)
async def incoming_call(
    registry: PendingCallRegistry = Depends(get_registry),
) -> IncomingCallResponse:
    entry = registry.oldest()
    if entry is None:
        return IncomingCallResponse(pending=False)
    return IncomingCallResponse(pending=True, callSid=entry.call_sid, from_=entry.caller)


@router.get("/incoming-calls", response_model=PendingCallsResponse)
async def incoming_calls(
    registry: PendingCallRegistry = Depends(get_registry),
) -> PendingCallsResponse:
    return PendingCallsResponse(
        calls=[
            PendingCallItem(
                callSid=entry.call_sid,
                from_=entry.caller,
                registeredAt=entry.registered_wall.isoformat(),
            )
            for entry in registry.list_oldest_first()
        ]
    )


@router.post("/call-accept", response_model=OkResponse)
async def accept_call(
    payload: CallDecisionRequest | None = Body(default=None),
    call_sid: str | None = Query(default=None, alias="callSid"),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
    urls: CallbackUrls = Depends(get_callback_urls),
) -> OkResponse:
    await orchestrator.accept(_pick(payload.callSid if payload else None, call_sid), urls.conversation)
    return OkResponse()


@router.post("/call-decline", response_model=OkResponse)
async def decline_call(
    payload: CallDecisionRequest | None = Body(default=None),
    call_sid: str | None = Query(default=None, alias="callSid"),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> OkResponse:
    await orchestrator.decline(_pick(payload.callSid if payload else None, call_sid))
    return OkResponse()


@router.post("/call-out", response_model=CallOutResponse)
async def call_out(
    payload: CallOutRequest | None = Body(default=None),
    to: str | None = Query(default=None),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
    urls: CallbackUrls = Depends(get_callback_urls),
) -> CallOutResponse:
    call = await orchestrator.place_call(_pick(payload.to if payload else None, to), urls.conversation)
    return CallOutResponse(sid=call.sid, status=call.status)
