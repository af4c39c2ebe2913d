"""Single request/response wrapper around the generative backend."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from agents.errors import BackendError, VoiceAgentError
from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from llm.factory import build_llm_client
from prompts.loader import render_prompt

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT_FILE = "bus_agent_system.txt"
CALLER_TURN_FILE = "caller_turn.txt"


def build_messages(utterance: str, context: dict[str, Any]) -> list[dict[str, str]]:
    """Assemble the chat request: fixed instructions, full context, caller words."""

    context_json = json.dumps(context, indent=2, ensure_ascii=False)
    return [
        {
            "role": "system",
            "content": render_prompt(SYSTEM_PROMPT_FILE, context_json=context_json),
        },
        {
            "role": "user",
            "content": render_prompt(CALLER_TURN_FILE, utterance=utterance.strip()),
        },
    ]


class ReplyGenerator:
    """Produces the assistant's answer for one caller utterance.

    Raises ``BackendUnavailableError`` when no backend is configured and
    ``BackendError`` when the backend fails. It never returns fallback text;
    degrading to an apology is the caller's decision.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        llm_client: BaseLLMClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._llm = llm_client

    def _client(self) -> BaseLLMClient:
        if self._llm is None:
            self._llm = build_llm_client(self._settings)
        return self._llm

    async def generate(self, utterance: str, context: dict[str, Any]) -> str:
        client = self._client()
        messages = build_messages(utterance, context)
        try:
            reply = await asyncio.wait_for(
                client.chat(
                    messages,
                    temperature=self._settings.llm_temperature,
                    max_tokens=self._settings.llm_max_tokens,
                ),
                timeout=self._settings.llm_timeout_seconds,
            )
        except VoiceAgentError:
            raise
        except asyncio.TimeoutError as exc:
            raise BackendError(
                f"LLM request timed out after {self._settings.llm_timeout_seconds:.0f}s"
            ) from exc
        except Exception as exc:
            raise BackendError(f"LLM request failed: {exc}") from exc

        reply = (reply or "").strip()
        if not reply:
            raise BackendError("LLM returned an empty reply.")
        return reply
