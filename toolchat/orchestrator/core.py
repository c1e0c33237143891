"""
Turn engine -- the loop that runs one user turn to completion.

For each turn the engine:
1. Builds a request from the full transcript plus the tool manifest
2. Opens a fragment stream on the LLM client
3. Renders reasoning and answer text as it arrives
4. Records each batch of tool calls as a tool-request message, dispatches
   the calls through the registry and records their results
5. Calls the LLM again while the previous stream requested tools
6. Records the collected answer text as one assistant message
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from toolchat.cli.output import OutputFormatter
from toolchat.llm.client import LLMClient
from toolchat.llm.errors import LLMError, TransportError
from toolchat.llm.types import Message, ToolCall, Transcript, UsageTotals
from toolchat.tools.registry import ToolRegistry
from toolchat.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class TurnExhaustedError(LLMError):
    """The model was still requesting tools when the iteration cap was hit."""

    def __init__(self, iterations: int):
        super().__init__(
            f"Reached maximum of {iterations} LLM calls while the model kept requesting tools",
            code=ErrorCode.TURN_EXHAUSTED,
        )
        self.iterations = iterations


@dataclass
class TurnResult:
    usage: UsageTotals = field(default_factory=UsageTotals)
    iterations: int = 0
    text: str | None = None


@dataclass
class _TurnState:
    saw_reasoning_header: bool = False
    saw_answer_header: bool = False
    chunks: list[str] = field(default_factory=list)


class TurnEngine:
    """
    Runs user turns against an LLM client.

    Parameters
    ----------
    client : LLMClient
        Streaming chat-completion client.
    registry : ToolRegistry
        Tools offered to the model and dispatched on request.
    output : OutputFormatter
        Where streamed text, tool traces and headers are rendered.
    max_iterations : int
        Max LLM calls per turn; ``0`` means unbounded.
    chunk_separator : str
        Joiner for streamed answer chunks when recording the assistant text.
    """

    def __init__(
        self,
        client: LLMClient,
        registry: ToolRegistry,
        output: OutputFormatter | None = None,
        max_iterations: int = 8,
        chunk_separator: str = " ",
    ) -> None:
        self.client = client
        self.registry = registry
        self.output = output or OutputFormatter()
        self.max_iterations = max_iterations
        self.chunk_separator = chunk_separator

    async def run_turn(self, transcript: Transcript) -> TurnResult:
        """
        Run one turn; *transcript* must already end with the user message.

        Raises ``TransportError`` if an LLM call cannot be opened and
        ``TurnExhaustedError`` if the iteration cap is reached.  Messages
        recorded before the failure stay in the transcript.
        """
        result = TurnResult()
        state = _TurnState()

        while True:
            if self.max_iterations and result.iterations >= self.max_iterations:
                logger.warning(
                    "Turn exhausted after %d iterations", result.iterations
                )
                raise TurnExhaustedError(result.iterations)
            result.iterations += 1

            saw_tool_call = await self._iterate(transcript, state, result.usage)
            if not saw_tool_call:
                break

        if state.chunks:
            result.text = self.chunk_separator.join(state.chunks)
            transcript.append(Message.assistant(result.text))
            self.output.answer_done()
        return result

    async def _iterate(
        self, transcript: Transcript, state: _TurnState, usage: UsageTotals
    ) -> bool:
        body = self.client.build_request(
            transcript.to_wire(), self.registry.definitions()
        )
        stream = await self.client.call(body)

        saw_tool_call = False
        try:
            async for fragment in stream:
                if fragment.usage is not None:
                    usage.add(fragment.usage)
                if not fragment.choices:
                    continue

                delta = fragment.choices[0].delta
                if delta.reasoning:
                    self._ensure_reasoning_header(state)
                    self.output.reasoning(delta.reasoning)
                elif delta.tool_calls:
                    self._ensure_reasoning_header(state)
                    saw_tool_call = True
                    await self._run_tools(transcript, delta.tool_calls)
                elif delta.content:
                    if not state.saw_answer_header:
                        self.output.answer_header()
                        state.saw_answer_header = True
                    self.output.answer(delta.content)
                    state.chunks.append(delta.content)
                elif delta.finish_reason:
                    logger.debug("finish_reason=%s", delta.finish_reason)
        finally:
            await stream.aclose()

        if isinstance(stream.error, TransportError):
            logger.warning("Stream ended early: %s", stream.error)
        elif stream.error is not None:
            logger.info("Stream closed on decode error: %s", stream.error)
        return saw_tool_call

    def _ensure_reasoning_header(self, state: _TurnState) -> None:
        if not state.saw_reasoning_header:
            self.output.reasoning_header()
            state.saw_reasoning_header = True

    async def _run_tools(self, transcript: Transcript, calls: list[ToolCall]) -> None:
        # Request record first; the results below reference its ids.
        transcript.append(Message.tool_request(calls))

        for pos, call in enumerate(calls):
            self.output.tool_call(call)
            results: list[dict] = []
            try:
                message = await self.registry.dispatch(call, results)
            except asyncio.CancelledError:
                self._record_cancelled(transcript, calls[pos:])
                raise
            if message is None:
                self.output.tool_skipped(call)
                continue
            self.output.tool_result(message)
            for r in results:
                transcript.append(Message.tool_result(r["tool_call_id"], r["content"]))

    def _record_cancelled(self, transcript: Transcript, calls: list[ToolCall]) -> None:
        """Close out calls a cancelled turn never finished with FAILED results."""
        for call in calls:
            if call.name not in self.registry:
                continue
            result = ToolResult.fail(
                "turn cancelled before the tool finished", ErrorCode.TIMEOUT
            )
            transcript.append(Message.tool_result(call.id, result.to_content()))
        logger.info("Recorded %d cancelled tool call(s)", len(calls))
