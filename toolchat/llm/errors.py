"""LLM-specific error hierarchy."""

from __future__ import annotations

from toolchat.types import ErrorCode


class LLMError(Exception):
    """Base for all errors raised by the LLM subsystem."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class TransportError(LLMError):
    """The request never produced a 200 stream (bad status, connect failure)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, code=ErrorCode.TRANSPORT_ERROR)
        self.status_code = status_code


class StreamDecodeError(LLMError):
    """A line of the SSE body, or the tool arguments it carried, could not be decoded."""

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.LLM_PROTOCOL_ERROR)
