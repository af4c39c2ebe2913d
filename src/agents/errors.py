"""Domain-specific exceptions for call orchestration.

These exceptions are safe to import from API layers without pulling in the
telephony or LLM SDKs. Every external call site maps its failure into one of
these before deciding between a spoken fallback and an HTTP error.
"""

from __future__ import annotations


class VoiceAgentError(Exception):
    status_code: int = 500
    default_detail: str = "Voice agent error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationMissingError(VoiceAgentError):
    status_code = 503
    default_detail = "Required configuration is missing."


class BackendUnavailableError(ConfigurationMissingError):
    default_detail = "Reply generation backend is not configured."


class ValidationError(VoiceAgentError):
    status_code = 400
    default_detail = "Invalid request."


class CallNotFoundError(VoiceAgentError):
    status_code = 404
    default_detail = "Call no longer pending"


class CallEndedError(CallNotFoundError):
    default_detail = "Call has already ended"


class UpstreamError(VoiceAgentError):
    status_code = 500
    default_detail = "Upstream service request failed."


class BackendError(UpstreamError):
    default_detail = "Reply generation request failed."
