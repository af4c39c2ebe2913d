"""Dashboard commands: accept or decline pending calls, list and place calls."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from agents.errors import (
    CallEndedError,
    CallNotFoundError,
    ConfigurationMissingError,
    ValidationError,
)
from calls.registry import PendingCall, PendingCallRegistry
from integrations.twilio_client import CallRecord, PlacedCall

LOGGER = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")

DEFAULT_CALL_LIST_LIMIT = 50
MAX_CALL_LIST_LIMIT = 100


class TelephonyGateway(Protocol):
    @property
    def from_number(self) -> str | None: ...

    async def redirect(self, call_sid: str, url: str) -> None: ...

    async def hang_up(self, call_sid: str) -> None: ...

    async def list_calls(self, limit: int) -> list[CallRecord]: ...

    async def place_call(self, to_number: str, url: str) -> PlacedCall: ...


def clamp_call_limit(raw: str | int | None) -> int:
    try:
        limit = int(raw) if raw is not None else 0
    except (TypeError, ValueError):
        limit = 0
    if limit == 0:
        limit = DEFAULT_CALL_LIST_LIMIT
    return max(1, min(limit, MAX_CALL_LIST_LIMIT))


class CallOrchestrator:
    """Turns dashboard decisions into live-call commands.

    A decision claims the registry entry before the provider is contacted, so
    only one of two racing decisions reaches Twilio. If the provider request
    fails the entry is put back and the dashboard can retry.
    """

    def __init__(
        self,
        registry: PendingCallRegistry,
        gateway: TelephonyGateway | None,
    ) -> None:
        self._registry = registry
        self._gateway = gateway

    async def accept(self, call_sid: str | None, conversation_url: str) -> None:
        gateway = self._require_gateway("Twilio not configured")
        entry = self._claim(call_sid)
        try:
            await gateway.redirect(entry.call_sid, conversation_url)
        except CallEndedError:
            self._registry.release(entry, restore=False)
            raise
        except Exception:
            self._registry.release(entry, restore=True)
            raise
        self._registry.release(entry, restore=False)
        LOGGER.info("Call %s accepted and connected to the assistant", entry.call_sid)

    async def decline(self, call_sid: str | None) -> None:
        gateway = self._require_gateway("Twilio not configured")
        entry = self._claim(call_sid)
        try:
            await gateway.hang_up(entry.call_sid)
        except CallEndedError:
            LOGGER.info("Call %s ended before it was declined", entry.call_sid)
        except Exception:
            self._registry.release(entry, restore=True)
            raise
        self._registry.release(entry, restore=False)
        LOGGER.info("Call %s declined", entry.call_sid)

    async def recent_calls(self, limit: str | int | None) -> list[CallRecord]:
        gateway = self._require_gateway("Twilio credentials not configured")
        return await gateway.list_calls(clamp_call_limit(limit))

    async def place_call(self, to_number: str | None, conversation_url: str) -> PlacedCall:
        gateway = self._require_gateway("Twilio credentials not configured")
        if not gateway.from_number:
            raise ConfigurationMissingError("TWILIO_PHONE_NUMBER not set in environment")
        to_number = (to_number or "").strip()
        if not to_number:
            raise ValidationError(
                "Missing 'to' phone number. Send a JSON body such as "
                "{\"to\": \"+923001234567\"} with Content-Type: application/json."
            )
        if not E164_PATTERN.match(to_number):
            raise ValidationError("'to' must be an E.164 phone number, e.g. +923001234567")
        call = await gateway.place_call(to_number, conversation_url)
        LOGGER.info("Outbound call %s to %s initiated", call.sid, to_number)
        return call

    def _require_gateway(self, detail: str) -> TelephonyGateway:
        if self._gateway is None:
            raise ConfigurationMissingError(detail)
        return self._gateway

    def _claim(self, call_sid: str | None) -> PendingCall:
        call_sid = (call_sid or "").strip()
        if not call_sid:
            raise ValidationError("Missing callSid")
        entry = self._registry.claim(call_sid)
        if entry is None:
            raise CallNotFoundError()
        return entry
