from __future__ import annotations

import asyncio
import json

import pytest

from agents.errors import BackendError, BackendUnavailableError
from agents.reply_generator import ReplyGenerator, build_messages
from config.settings import Settings
from context.bus_data import builtin_context
from llm.base import BaseLLMClient


class FakeLLM(BaseLLMClient):
    def __init__(self, *, response: str = "", error: Exception | None = None, delay: float = 0.0) -> None:
        self._response = response
        self._error = error
        self._delay = delay
        self.calls: list[dict] = []

    async def chat(self, messages, *, temperature: float = 0.3, max_tokens: int = 220) -> str:
        self.calls.append({"messages": list(messages), "temperature": temperature, "max_tokens": max_tokens})
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._response


def _run(coro):
    return asyncio.run(coro)


def _settings(**overrides) -> Settings:
    values = {"llm_provider": "openai", "llm_api_key": None, "llm_endpoint": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_generate_without_credential_raises_backend_unavailable():
    generator = ReplyGenerator(_settings())

    with pytest.raises(BackendUnavailableError):
        _run(generator.generate("When is the next bus?", builtin_context()))


def test_self_hosted_provider_without_endpoint_raises_backend_unavailable():
    generator = ReplyGenerator(_settings(llm_provider="self_hosted_vllm"))

    with pytest.raises(BackendUnavailableError):
        _run(generator.generate("When is the next bus?", builtin_context()))


def test_prompt_embeds_full_context_and_instructions():
    context = builtin_context()
    messages = build_messages("  What time is the Lahore to Islamabad bus?  ", context)

    system = messages[0]["content"]
    assert messages[0]["role"] == "system"
    assert json.dumps(context, indent=2, ensure_ascii=False) in system
    assert "under 4 sentences" in system
    assert "bullet points" in system
    assert messages[1]["role"] == "user"
    assert '"What time is the Lahore to Islamabad bus?"' in messages[1]["content"]


def test_generate_returns_trimmed_reply_with_configured_sampling():
    llm = FakeLLM(response="  The first bus leaves at 8 AM.  ")
    generator = ReplyGenerator(_settings(llm_temperature=0.3, llm_max_tokens=220), llm_client=llm)

    reply = _run(generator.generate("First bus to Islamabad?", builtin_context()))

    assert reply == "The first bus leaves at 8 AM."
    assert llm.calls[0]["temperature"] == 0.3
    assert llm.calls[0]["max_tokens"] == 220


def test_remote_failure_is_reported_as_backend_error():
    generator = ReplyGenerator(_settings(), llm_client=FakeLLM(error=RuntimeError("502 Bad Gateway")))

    with pytest.raises(BackendError) as excinfo:
        _run(generator.generate("Hello", builtin_context()))

    assert "502" in excinfo.value.detail


def test_empty_reply_is_a_backend_error():
    generator = ReplyGenerator(_settings(), llm_client=FakeLLM(response="   "))

    with pytest.raises(BackendError):
        _run(generator.generate("Hello", builtin_context()))


def test_hanging_backend_is_cut_off():
    generator = ReplyGenerator(
        _settings(llm_timeout_seconds=0.05),
        llm_client=FakeLLM(response="late", delay=2),
    )

    with pytest.raises(BackendError):
        _run(generator.generate("Hello", builtin_context()))


def test_self_hosted_client_posts_chat_completion():
    import httpx

    from llm.vllm_client import VLLMClient

    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Eight AM."}}]})

    settings = _settings(llm_provider="self_hosted_vllm", llm_endpoint="http://llm.local/", llm_api_key="k")
    client = VLLMClient(settings, transport=httpx.MockTransport(handler))
    generator = ReplyGenerator(settings, llm_client=client)

    assert _run(generator.generate("First bus?", builtin_context())) == "Eight AM."
    assert str(seen[0].url) == "http://llm.local/v1/chat/completions"
    assert seen[0].headers["authorization"] == "Bearer k"
    assert json.loads(seen[0].content)["max_tokens"] == 220


def test_original_environment_names_are_accepted():
    settings = Settings(
        _env_file=None,
        openai_api_key="sk-test",
        openai_model="gpt-4o",
        twilio_phone_number="+15005550006",
        base_url="https://agent.example.com",
        bookme_bus_api_url="https://api.bookme.pk/REST/API/bus_times",
    )

    assert settings.llm_api_key == "sk-test"
    assert settings.llm_model == "gpt-4o"
    assert settings.twilio_from_number == "+15005550006"
    assert settings.public_base_url == "https://agent.example.com"
    assert settings.bus_data_source_configured
