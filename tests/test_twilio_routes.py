from __future__ import annotations

import logging

from fastapi.testclient import TestClient


def test_incoming_call_is_put_on_hold(client, registry):
    resp = client.post("/voice/incoming", data={"CallSid": "CA111", "From": "+923001112222"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/xml")
    assert "Please hold" in resp.text
    assert "/voice/hold</Redirect>" in resp.text
    assert registry.get("CA111").caller == "+923001112222"


def test_incoming_call_falls_back_to_caller_field(client, registry):
    client.post("/voice/incoming", data={"CallSid": "CA112", "Caller": "+923005556666"})

    assert registry.get("CA112").caller == "+923005556666"


def test_hold_loop_redirects_to_itself(client, registry):
    registry.register("CA111", None)

    resp = client.post("/voice/hold", data={"CallSid": "CA111"})

    assert resp.status_code == 200
    assert "<Pause" in resp.text
    assert "/voice/hold</Redirect>" in resp.text


def test_voice_webhook_returns_gather_when_no_speech(client, conversation):
    resp = client.post("/voice", data={"CallSid": "CA111"})

    assert resp.status_code == 200
    assert "<Gather" in resp.text
    assert "Daewoo Express" in resp.text
    assert conversation.turns == []


def test_voice_webhook_says_response_when_speech_present(client, conversation):
    resp = client.post(
        "/voice",
        data={"CallSid": "CA111", "SpeechResult": "What time is the Lahore to Islamabad bus?"},
    )

    assert resp.status_code == 200
    assert "<Say" in resp.text
    assert "leaves at 8 AM" in resp.text
    assert conversation.turns == [("What time is the Lahore to Islamabad bus?", "CA111")]


def test_voice_webhook_retry_reprompts(client):
    resp = client.post("/voice?retry=1", data={"CallSid": "CA111"})

    assert "did not hear anything" in resp.text


def test_status_callback_forgets_hung_up_call(client, registry):
    registry.register("CA111", None)

    resp = client.post("/voice/status", data={"CallSid": "CA111", "CallStatus": "completed"})

    assert resp.status_code == 200
    assert "CA111" not in registry


def test_unexpected_error_is_logged_once_by_the_server(app, client, caplog):
    import api.dependencies as deps

    class BrokenConversation:
        async def handle_utterance(self, text: str, call_sid: str) -> str:
            raise RuntimeError("boom")

    app.dependency_overrides[deps.get_conversation_controller] = lambda: BrokenConversation()

    with caplog.at_level(logging.ERROR), TestClient(app, raise_server_exceptions=False) as raw:
        resp = raw.post("/voice", data={"CallSid": "CA1", "SpeechResult": "hello"})

    assert resp.status_code == 500
    assert [record for record in caplog.records if record.name == "main"] == []
