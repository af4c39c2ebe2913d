"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules. Long-lived
components are process-wide singletons, the Twilio gateway included. Read-only
dashboard endpoints depend on the registry alone.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request

from agents.conversation import ConversationTurnController
from agents.reply_generator import ReplyGenerator
from calls.orchestrator import CallOrchestrator
from calls.registry import PendingCallRegistry
from calls.signals import CallbackUrls, CallSignalStateMachine
from config.settings import get_settings
from context.provider import ContextProvider
from integrations.twilio_client import TwilioGateway, build_twilio_gateway


@lru_cache(maxsize=1)
def get_registry() -> PendingCallRegistry:
    return PendingCallRegistry(max_age_seconds=get_settings().pending_call_max_age_seconds)


@lru_cache(maxsize=1)
def get_context_provider() -> ContextProvider:
    return ContextProvider(get_settings())


@lru_cache(maxsize=1)
def get_reply_generator() -> ReplyGenerator:
    return ReplyGenerator(get_settings())


def get_conversation_controller(
    context_provider: ContextProvider = Depends(get_context_provider),
    reply_generator: ReplyGenerator = Depends(get_reply_generator),
) -> ConversationTurnController:
    return ConversationTurnController(context_provider, reply_generator)


def get_signal_machine(
    registry: PendingCallRegistry = Depends(get_registry),
    conversation: ConversationTurnController = Depends(get_conversation_controller),
) -> CallSignalStateMachine:
    return CallSignalStateMachine(registry, conversation, get_settings())


@lru_cache(maxsize=1)
def get_telephony_gateway() -> TwilioGateway | None:
    return build_twilio_gateway(get_settings())


def get_orchestrator(
    registry: PendingCallRegistry = Depends(get_registry),
    gateway: TwilioGateway | None = Depends(get_telephony_gateway),
) -> CallOrchestrator:
    return CallOrchestrator(registry, gateway)


def get_callback_urls(request: Request) -> CallbackUrls:
    settings = get_settings()
    if settings.public_base_url:
        base = settings.public_base_url.rstrip("/")
    else:
        # Fallback to request host. This may not work behind proxies; prefer PUBLIC_BASE_URL.
        base = str(request.base_url).rstrip("/")
    return CallbackUrls(hold=f"{base}/voice/hold", conversation=f"{base}/voice")

