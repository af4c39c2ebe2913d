from __future__ import annotations

import asyncio

from agents.conversation import FALLBACK_REPLY, ConversationTurnController, to_spoken_text
from agents.errors import BackendError
from agents.reply_generator import ReplyGenerator
from config.settings import Settings
from context.bus_data import builtin_context


class StaticContext:
    async def get_context(self):
        return builtin_context()


class BrokenContext:
    async def get_context(self):
        raise RuntimeError("context store exploded")


class ScriptedGenerator:
    def __init__(self, reply: str | None = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.seen: list[tuple[str, dict]] = []

    async def generate(self, utterance, context):
        self.seen.append((utterance, context))
        if self.error is not None:
            raise self.error
        return self.reply


def _run(coro):
    return asyncio.run(coro)


def test_missing_credential_yields_fallback_apology():
    generator = ReplyGenerator(Settings(_env_file=None, llm_provider="openai", llm_api_key=None))
    controller = ConversationTurnController(StaticContext(), generator)

    reply = _run(controller.handle_utterance("What time is the Lahore to Islamabad bus?", "CA1"))

    assert reply == FALLBACK_REPLY


def test_backend_error_yields_fallback_apology():
    controller = ConversationTurnController(StaticContext(), ScriptedGenerator(error=BackendError()))

    assert _run(controller.handle_utterance("Hello", "CA1")) == FALLBACK_REPLY


def test_unexpected_context_failure_yields_fallback_apology():
    controller = ConversationTurnController(BrokenContext(), ScriptedGenerator(reply="unused"))

    assert _run(controller.handle_utterance("Hello", "CA1")) == FALLBACK_REPLY


def test_reply_reads_as_prose():
    generator = ScriptedGenerator(
        reply=(
            "Buses from Lahore to Islamabad leave at:\n"
            "- **08:00 AM**\n"
            "- 11:00 AM [morning]\n"
            "1. {\"ticketPrice\": \"3,500 PKR\"}"
        )
    )
    controller = ConversationTurnController(StaticContext(), generator)

    reply = _run(controller.handle_utterance("What time is the Lahore to Islamabad bus?", "CA1"))

    assert reply
    for char in "[]{}*":
        assert char not in reply
    assert "\n" not in reply
    assert reply.startswith("Buses from Lahore to Islamabad leave at: 08:00 AM.")
    assert generator.seen[0][1] == builtin_context()


def test_reply_that_is_only_markup_falls_back():
    controller = ConversationTurnController(StaticContext(), ScriptedGenerator(reply="- \n**\n{}"))

    assert _run(controller.handle_utterance("Hello", "CA1")) == FALLBACK_REPLY


def test_to_spoken_text_keeps_plain_sentences_untouched():
    text = "The Lahore to Multan bus takes 4 hours. Tickets cost 2,800 PKR."

    assert to_spoken_text(text) == text
