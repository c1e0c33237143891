"""LLM subsystem -- streaming client, SSE decoding, and tool-call assembly."""

from toolchat.llm.client import FragmentStream, LLMClient
from toolchat.llm.errors import LLMError, StreamDecodeError, TransportError
from toolchat.llm.tool_call_assembler import ToolCallAssembler
from toolchat.llm.types import (
    Choice,
    Delta,
    Fragment,
    Message,
    ToolCall,
    ToolCallDelta,
    Transcript,
    Usage,
    UsageTotals,
)

__all__ = [
    "Choice",
    "Delta",
    "Fragment",
    "FragmentStream",
    "LLMClient",
    "LLMError",
    "Message",
    "StreamDecodeError",
    "ToolCall",
    "ToolCallAssembler",
    "ToolCallDelta",
    "Transcript",
    "TransportError",
    "Usage",
    "UsageTotals",
]
