from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class FakeConversation:
    """Stands in for the turn controller so route tests never reach an LLM."""

    def __init__(self, reply: str = "The Lahore to Islamabad bus leaves at 8 AM.") -> None:
        self.reply = reply
        self.turns: list[tuple[str, str]] = []

    async def handle_utterance(self, text: str, call_sid: str) -> str:
        self.turns.append((text, call_sid))
        return self.reply


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def app():
    import main

    return main.app


@pytest.fixture()
def registry():
    from calls.registry import PendingCallRegistry

    return PendingCallRegistry(max_age_seconds=90)


@pytest.fixture()
def conversation() -> FakeConversation:
    return FakeConversation()


@pytest.fixture()
def client(app, registry, conversation):
    import api.dependencies as deps

    app.dependency_overrides[deps.get_registry] = lambda: registry
    app.dependency_overrides[deps.get_conversation_controller] = lambda: conversation
    app.dependency_overrides[deps.get_telephony_gateway] = lambda: None

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
