"""Call signaling state machine.

Twilio webhooks are stateless, so the phase of a call is re-derived on every
request from three facts: which endpoint was hit, whether a speech result is
attached, and whether the call is still tracked by the pending-call registry.
``TRANSITIONS`` maps those facts to the action to take and the resulting phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from agents.conversation import ConversationTurnController
from calls import twiml
from calls.registry import PendingCallRegistry
from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

HOLD_MESSAGE = "Please hold. Your call is important to us."
GREETING = (
    "Thank you for calling Daewoo Express Pakistan. I can help you with bus schedules, "
    "ticket prices, route durations, bookings, and terminal information. Please tell me "
    "how I can assist you."
)
REPROMPT = (
    "Sorry, I did not hear anything. Please tell me which route, ticket, or booking "
    "question I can help you with."
)
UNAVAILABLE_MESSAGE = "We are unable to take your call right now. Please try again later. Goodbye."

TERMINAL_CALL_STATUSES = frozenset({"completed", "busy", "failed", "no-answer", "canceled"})


class CallPhase(str, Enum):
    RINGING = "ringing"
    ON_HOLD = "on_hold"
    CONNECTED = "connected"
    TERMINATED = "terminated"


class SignalEndpoint(str, Enum):
    INCOMING = "incoming"
    HOLD = "hold"
    CONVERSATION = "conversation"


class Transition(str, Enum):
    REGISTER_AND_HOLD = "register_and_hold"
    KEEP_HOLDING = "keep_holding"
    RELEASE_ORPHAN = "release_orphan"
    REJECT_UNIDENTIFIED = "reject_unidentified"
    GREET = "greet"
    REPLY = "reply"


# (endpoint, speech attached, tracked by registry) -> (action, resulting phase)
TRANSITIONS: dict[tuple[SignalEndpoint, bool, bool], tuple[Transition, CallPhase]] = {
    (SignalEndpoint.INCOMING, False, False): (Transition.REGISTER_AND_HOLD, CallPhase.ON_HOLD),
    (SignalEndpoint.INCOMING, False, True): (Transition.REGISTER_AND_HOLD, CallPhase.ON_HOLD),
    (SignalEndpoint.INCOMING, True, False): (Transition.REGISTER_AND_HOLD, CallPhase.ON_HOLD),
    (SignalEndpoint.INCOMING, True, True): (Transition.REGISTER_AND_HOLD, CallPhase.ON_HOLD),
    (SignalEndpoint.HOLD, False, True): (Transition.KEEP_HOLDING, CallPhase.ON_HOLD),
    (SignalEndpoint.HOLD, True, True): (Transition.KEEP_HOLDING, CallPhase.ON_HOLD),
    (SignalEndpoint.HOLD, False, False): (Transition.RELEASE_ORPHAN, CallPhase.TERMINATED),
    (SignalEndpoint.HOLD, True, False): (Transition.RELEASE_ORPHAN, CallPhase.TERMINATED),
    (SignalEndpoint.CONVERSATION, False, False): (Transition.GREET, CallPhase.CONNECTED),
    (SignalEndpoint.CONVERSATION, False, True): (Transition.GREET, CallPhase.CONNECTED),
    (SignalEndpoint.CONVERSATION, True, False): (Transition.REPLY, CallPhase.CONNECTED),
    (SignalEndpoint.CONVERSATION, True, True): (Transition.REPLY, CallPhase.CONNECTED),
}


@dataclass(frozen=True)
class SignalEvent:
    """One inbound provider webhook, reduced to what the state machine needs."""

    endpoint: SignalEndpoint
    call_sid: str | None
    caller: str | None = None
    speech: str | None = None
    retry: bool = False

    @property
    def has_speech(self) -> bool:
        return bool(self.speech and self.speech.strip())


@dataclass(frozen=True)
class CallbackUrls:
    hold: str
    conversation: str

    @property
    def conversation_retry(self) -> str:
        separator = "&" if "?" in self.conversation else "?"
        return f"{self.conversation}{separator}retry=1"


@dataclass(frozen=True)
class SignalOutcome:
    transition: Transition
    phase: CallPhase
    twiml: str


class CallSignalStateMachine:
    """Translates signaling events into TwiML for the next step of the call."""

    def __init__(
        self,
        registry: PendingCallRegistry,
        conversation: ConversationTurnController,
        settings: Settings | None = None,
    ) -> None:
        self._registry = registry
        self._conversation = conversation
        self._settings = settings or get_settings()

    def resolve(self, event: SignalEvent) -> tuple[Transition, CallPhase]:
        if not event.call_sid and event.endpoint is not SignalEndpoint.CONVERSATION:
            return Transition.REJECT_UNIDENTIFIED, CallPhase.TERMINATED
        tracked = bool(event.call_sid) and self._registry.is_tracked(event.call_sid or "")
        return TRANSITIONS[(event.endpoint, event.has_speech, tracked)]

    async def handle(self, event: SignalEvent, urls: CallbackUrls) -> SignalOutcome:
        transition, phase = self.resolve(event)
        settings = self._settings
        voice = settings.twilio_say_voice

        if transition is Transition.REGISTER_AND_HOLD:
            self._registry.register(event.call_sid or "", event.caller)
            xml = twiml.hold_announcement(message=HOLD_MESSAGE, hold_url=urls.hold, voice=voice)
        elif transition is Transition.KEEP_HOLDING:
            xml = twiml.hold_loop(hold_url=urls.hold, pause_seconds=settings.hold_pause_seconds)
        elif transition is Transition.RELEASE_ORPHAN:
            LOGGER.info("Call %s is no longer pending; ending hold loop", event.call_sid)
            xml = twiml.say_and_hangup(message=UNAVAILABLE_MESSAGE, voice=voice)
        elif transition is Transition.REJECT_UNIDENTIFIED:
            LOGGER.warning("Inbound %s signal without CallSid; hanging up", event.endpoint.value)
            xml = twiml.say_and_hangup(message=UNAVAILABLE_MESSAGE, voice=voice)
        elif transition is Transition.GREET:
            xml = self._capture(REPROMPT if event.retry else GREETING, urls)
        else:
            reply = await self._conversation.handle_utterance(
                (event.speech or "").strip(), event.call_sid or "unknown"
            )
            xml = self._capture(reply, urls)

        LOGGER.debug(
            "Call %s: %s via %s -> %s",
            event.call_sid,
            transition.value,
            event.endpoint.value,
            phase.value,
        )
        return SignalOutcome(transition=transition, phase=phase, twiml=xml)

    def handle_status(self, call_sid: str | None, status: str | None) -> CallPhase | None:
        """Drop a pending call once the provider reports it finished."""

        normalized = (status or "").strip().lower()
        if not call_sid or normalized not in TERMINAL_CALL_STATUSES:
            return None
        if call_sid in self._registry:
            LOGGER.info("Pending call %s ended by provider (%s)", call_sid, normalized)
        self._registry.remove(call_sid)
        return CallPhase.TERMINATED

    def _capture(self, prompt: str, urls: CallbackUrls) -> str:
        settings = self._settings
        return twiml.speech_turn(
            prompt=prompt,
            action_url=urls.conversation,
            no_speech_url=urls.conversation_retry,
            voice=settings.twilio_say_voice,
            language=settings.twilio_say_language,
            timeout=settings.gather_timeout_seconds,
        )
