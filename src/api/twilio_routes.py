"""Twilio Voice integration.

This module provides the provider-facing webhooks (form-encoded, TwiML out):
- ``/voice/incoming``: first signal of an inbound call; the caller is put on hold.
- ``/voice/hold``: hold loop polled until the dashboard accepts or declines.
- ``/voice``: conversation entry point, speech-to-text via <Gather input="speech">.
- ``/voice/status``: status callback used to forget calls that hung up while waiting.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import get_callback_urls, get_signal_machine
from calls import twiml
from calls.signals import CallbackUrls, CallSignalStateMachine, SignalEndpoint, SignalEvent

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["twilio"])


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _field(form, name: str) -> str | None:
    value = str(form.get(name) or "").strip()
    return value or None


async def _signal(
    request: Request,
    endpoint: SignalEndpoint,
    machine: CallSignalStateMachine,
    urls: CallbackUrls,
) -> Response:
    form = await request.form()
    event = SignalEvent(
        endpoint=endpoint,
        call_sid=_field(form, "CallSid"),
        caller=_field(form, "From") or _field(form, "Caller"),
        speech=_field(form, "SpeechResult"),
        retry=request.query_params.get("retry") == "1",
    )
    outcome = await machine.handle(event, urls)
    return _twiml_response(outcome.twiml)


@router.post("/incoming")
async def twilio_incoming_call(
    request: Request,
    machine: CallSignalStateMachine = Depends(get_signal_machine),
    urls: CallbackUrls = Depends(get_callback_urls),
) -> Response:
    return await _signal(request, SignalEndpoint.INCOMING, machine, urls)


@router.post("/hold")
async def twilio_hold_loop(
    request: Request,
    machine: CallSignalStateMachine = Depends(get_signal_machine),
    urls: CallbackUrls = Depends(get_callback_urls),
) -> Response:
    return await _signal(request, SignalEndpoint.HOLD, machine, urls)


@router.post("")
async def twilio_voice_webhook(
    request: Request,
    machine: CallSignalStateMachine = Depends(get_signal_machine),
    urls: CallbackUrls = Depends(get_callback_urls),
) -> Response:
    return await _signal(request, SignalEndpoint.CONVERSATION, machine, urls)


@router.post("/status")
async def twilio_status_callback(
    request: Request,
    machine: CallSignalStateMachine = Depends(get_signal_machine),
) -> Response:
    form = await request.form()
    machine.handle_status(_field(form, "CallSid"), _field(form, "CallStatus"))
    return _twiml_response(twiml.empty())
