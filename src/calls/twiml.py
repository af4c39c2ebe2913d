"""TwiML markup for each call phase.

Responses are assembled from small verb helpers; every text node and
attribute is escaped.
"""

from __future__ import annotations

from xml.sax.saxutils import escape

_ATTR_ENTITIES = {'"': "&quot;"}


def _attr(value: object) -> str:
    return escape(str(value), _ATTR_ENTITIES)


def _document(*verbs: str) -> str:
    return "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response>" + "".join(verbs) + "</Response>"


def say(text: str, *, voice: str) -> str:
    return f"<Say voice=\"{_attr(voice)}\">{escape(text)}</Say>"


def pause(seconds: int) -> str:
    return f"<Pause length=\"{max(1, int(seconds))}\"/>"


def redirect(url: str) -> str:
    return f"<Redirect method=\"POST\">{escape(url)}</Redirect>"


def hangup() -> str:
    return "<Hangup/>"


def gather_speech(*, prompt: str, action_url: str, voice: str, language: str, timeout: int) -> str:
    return (
        f"<Gather input=\"speech\" action=\"{_attr(action_url)}\" method=\"POST\" "
        f"language=\"{_attr(language)}\" timeout=\"{max(1, int(timeout))}\" speechTimeout=\"auto\">"
        f"{say(prompt, voice=voice)}"
        "</Gather>"
    )


def hold_announcement(*, message: str, hold_url: str, voice: str) -> str:
    return _document(say(message, voice=voice), redirect(hold_url))


def hold_loop(*, hold_url: str, pause_seconds: int) -> str:
    return _document(pause(pause_seconds), redirect(hold_url))


def speech_turn(
    *,
    prompt: str,
    action_url: str,
    no_speech_url: str,
    voice: str,
    language: str,
    timeout: int,
) -> str:
    """Speak ``prompt`` inside a capture window, then fall through to ``no_speech_url``."""

    return _document(
        gather_speech(
            prompt=prompt,
            action_url=action_url,
            voice=voice,
            language=language,
            timeout=timeout,
        ),
        redirect(no_speech_url),
    )


def say_and_hangup(*, message: str, voice: str) -> str:
    return _document(say(message, voice=voice), hangup())


def empty() -> str:
    return _document()
