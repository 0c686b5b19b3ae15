"""Shared error codes and user-facing messages."""

from __future__ import annotations

PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
PROVIDER_ERROR = "PROVIDER_ERROR"
MICROPHONE_DENIED = "MICROPHONE_DENIED"
ANALYSIS_FAILURE = "ANALYSIS_FAILURE"
LISTEN_TIMEOUT = "LISTEN_TIMEOUT"
SESSION_CLOSED = "SESSION_CLOSED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"

ERROR_MESSAGES = {
    PROVIDER_UNAVAILABLE: "Speech recognition is not available on this system.",
    PROVIDER_ERROR: "Speech recognition failed, please try again.",
    MICROPHONE_DENIED: "Microphone access is required in system settings.",
    ANALYSIS_FAILURE: "Sentence analysis failed.",
    LISTEN_TIMEOUT: "No speech was heard, please try again.",
    SESSION_CLOSED: "The practice session is closed.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    ASR_PROTOCOL_ERROR: "ASR response format is invalid.",
}


def message_for(code: str) -> str:
    return ERROR_MESSAGES.get(code, code)


class SessionClosedError(RuntimeError):
    """Raised when an attempt is recorded into a finalized practice session."""

    code = SESSION_CLOSED
