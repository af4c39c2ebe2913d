"""Per-utterance loop of a connected call."""

from __future__ import annotations

import logging
import re

from agents.errors import VoiceAgentError
from agents.reply_generator import ReplyGenerator
from context.provider import ContextProvider

LOGGER = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I am currently unable to access the bus information system. Please try again in a few "
    "minutes or visit your nearest Daewoo Express terminal for assistance."
)

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s+")
_MARKUP_CHARS = re.compile(r"[\[\]{}<>*_#`|]")
_WHITESPACE = re.compile(r"\s+")


def to_spoken_text(text: str) -> str:
    """Flatten generated text into plain sentences a speech engine can read."""

    lines = []
    for line in text.splitlines():
        line = _MARKUP_CHARS.sub("", _LIST_MARKER.sub("", line)).strip()
        if not any(char.isalnum() for char in line):
            continue
        if line[-1] not in ".!?,;:":
            line += "."
        lines.append(line)
    return _WHITESPACE.sub(" ", " ".join(lines)).strip()


class ConversationTurnController:
    """Turns one caller utterance into one spoken reply.

    No history is kept between turns. Any failure degrades to
    ``FALLBACK_REPLY`` so the call always continues.
    """

    def __init__(
        self,
        context_provider: ContextProvider,
        reply_generator: ReplyGenerator,
        *,
        fallback_reply: str = FALLBACK_REPLY,
    ) -> None:
        self._context_provider = context_provider
        self._reply_generator = reply_generator
        self._fallback_reply = fallback_reply

    async def handle_utterance(self, text: str, call_sid: str) -> str:
        try:
            context = await self._context_provider.get_context()
            reply = await self._reply_generator.generate(text, context)
        except VoiceAgentError as exc:
            LOGGER.warning("Reply generation failed for call %s: %s", call_sid, exc.detail)
            return self._fallback_reply
        except Exception as exc:
            LOGGER.exception("Unexpected error while answering call %s: %s", call_sid, exc)
            return self._fallback_reply

        spoken = to_spoken_text(reply)
        if not spoken:
            LOGGER.warning("Reply for call %s was empty after cleanup", call_sid)
            return self._fallback_reply
        return spoken
