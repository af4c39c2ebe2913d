"""Twilio REST access for live-call commands and call listings.

The Twilio SDK is synchronous, so every request runs in a worker thread.
SDK failures are mapped here: a call that is no longer in progress becomes
``CallEndedError``, anything else ``UpstreamError``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from twilio.base.exceptions import TwilioRestException

from agents.errors import CallEndedError, ConfigurationMissingError, UpstreamError
from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

# Twilio error codes for "call is not in-progress" and "resource not found".
CALL_ENDED_ERROR_CODES = frozenset({21220, 20404})

DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str | None


@dataclass(frozen=True)
class CallRecord:
    sid: str
    direction: str | None
    from_number: str | None
    to_number: str | None
    status: str | None
    duration: int | None
    start_time: str | None
    end_time: str | None


@dataclass(frozen=True)
class PlacedCall:
    sid: str
    status: str | None


def get_twilio_config(settings: Settings | None = None) -> TwilioConfig:
    settings = settings or get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ConfigurationMissingError("Twilio credentials not configured")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number or None,
    )


def _iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _int_or_none(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


class TwilioGateway:
    """Async facade over ``twilio.rest.Client``."""

    def __init__(
        self,
        config: TwilioConfig,
        client: Any | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._timeout = timeout_seconds
        if client is None:
            from twilio.rest import Client

            client = Client(config.account_sid, config.auth_token)
        self._client = client

    @property
    def from_number(self) -> str | None:
        return self._config.from_number

    async def redirect(self, call_sid: str, url: str) -> None:
        await self._run(
            "redirect",
            call_sid,
            lambda: self._client.calls(call_sid).update(url=url, method="POST"),
        )

    async def hang_up(self, call_sid: str) -> None:
        await self._run(
            "hang up",
            call_sid,
            lambda: self._client.calls(call_sid).update(status="completed"),
        )

    async def list_calls(self, limit: int) -> list[CallRecord]:
        calls = await self._run("list", None, lambda: self._client.calls.list(limit=limit))
        return [
            CallRecord(
                sid=str(call.sid),
                direction=_text_or_none(call.direction),
                from_number=_text_or_none(getattr(call, "from_", None)),
                to_number=_text_or_none(call.to),
                status=_text_or_none(call.status),
                duration=_int_or_none(call.duration),
                start_time=_iso(call.start_time),
                end_time=_iso(call.end_time),
            )
            for call in calls
        ]

    async def place_call(self, to_number: str, url: str) -> PlacedCall:
        if not self._config.from_number:
            raise ConfigurationMissingError("TWILIO_PHONE_NUMBER not set in environment")
        call = await self._run(
            "create",
            None,
            lambda: self._client.calls.create(
                to=to_number,
                from_=self._config.from_number,
                url=url,
                method="POST",
            ),
        )
        return PlacedCall(sid=str(call.sid), status=_text_or_none(call.status))

    async def _run(self, action: str, call_sid: str | None, func):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            LOGGER.error("Twilio %s timed out after %.0fs", action, self._timeout)
            raise UpstreamError(f"Twilio {action} timed out") from exc
        except TwilioRestException as exc:
            if call_sid and (exc.code in CALL_ENDED_ERROR_CODES or exc.status == 404):
                LOGGER.info("Twilio %s for %s: call already ended (%s)", action, call_sid, exc.code)
                raise CallEndedError() from exc
            LOGGER.exception("Twilio %s failed: %s", action, exc)
            raise UpstreamError(exc.msg or f"Twilio {action} failed") from exc
        except Exception as exc:
            LOGGER.exception("Twilio %s failed: %s", action, exc)
            raise UpstreamError(str(exc) or f"Twilio {action} failed") from exc


def build_twilio_gateway(settings: Settings | None = None) -> TwilioGateway | None:
    """Return a gateway, or ``None`` when Twilio credentials are absent."""

    settings = settings or get_settings()
    try:
        config = get_twilio_config(settings)
    except ConfigurationMissingError:
        return None
    return TwilioGateway(config, timeout_seconds=settings.twilio_timeout_seconds)
