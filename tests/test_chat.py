"""Tests for the interactive chat handler."""

from __future__ import annotations

import asyncio
import io
import json

import httpx
from rich.console import Console

from tests.mock_providers import TEST_URL, ScriptedServer, text_body, tool_call_body
from tests.mock_tools import EchoTool, SlowTool
from toolchat.cli.chat import ChatHandler
from toolchat.cli.output import OutputFormatter
from toolchat.llm.client import LLMClient
from toolchat.llm.types import (
    KIND_ASSISTANT_TEXT,
    KIND_SYSTEM,
    KIND_TOOL_REQUEST,
    KIND_TOOL_RESULT,
    KIND_USER,
    Transcript,
)
from toolchat.orchestrator.core import TurnEngine
from toolchat.tools.registry import ToolRegistry


class ScriptedInput:
    """Stands in for ``input``; raises EOFError once the lines run out."""

    def __init__(self, *lines: str) -> None:
        self.lines = list(lines)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)


def _handler(client, *lines, max_iterations=8, turn_timeout=None):
    output = OutputFormatter(Console(file=io.StringIO(), width=100))
    registry = ToolRegistry()
    registry.register(EchoTool(), SlowTool())
    engine = TurnEngine(
        client=client, registry=registry, output=output, max_iterations=max_iterations
    )
    handler = ChatHandler(
        engine=engine,
        transcript=Transcript("system"),
        output=output,
        turn_timeout=turn_timeout,
        input_func=ScriptedInput(*lines),
    )
    return handler


def _rendered(handler) -> str:
    return handler.output.console.file.getvalue()


class TestRunLoop:
    async def test_eof_exits_zero(self):
        server = ScriptedServer([text_body("unused")])
        handler = _handler(server.client())
        assert await handler.run_loop() == 0
        assert server.call_count == 0

    async def test_blank_lines_do_not_call_llm(self):
        server = ScriptedServer([text_body("unused")])
        handler = _handler(server.client(), "", "   ", "\t")
        assert await handler.run_loop() == 0
        assert server.call_count == 0
        assert len(handler.transcript) == 1
        assert handler._input.prompts == ["You> "] * 4

    async def test_one_turn_then_eof(self):
        server = ScriptedServer([text_body("Hello", "friend")])
        handler = _handler(server.client(), "hi there")
        assert await handler.run_loop() == 0

        kinds = [m.kind for m in handler.transcript]
        assert kinds == [KIND_SYSTEM, KIND_USER, KIND_ASSISTANT_TEXT]
        assert handler.transcript[1].content == "hi there"
        assert handler.transcript[2].content == "Hello friend"

        out = _rendered(handler)
        assert "Agent>" in out
        assert "Completion_Tokens: 0" in out
        assert "Prompt_Tokens: 0" in out
        assert "Total_Tokens: 0" in out

    async def test_user_text_kept_verbatim(self):
        server = ScriptedServer([text_body("ok")])
        handler = _handler(server.client(), "  padded  ")
        await handler.run_loop()
        assert handler.transcript[1].content == "  padded  "

    async def test_transcript_persists_across_turns(self):
        server = ScriptedServer([text_body("one"), text_body("two")])
        handler = _handler(server.client(), "first", "second")
        await handler.run_loop()

        assert server.call_count == 2
        second_request = server.requests[1]["messages"]
        assert [m["role"] for m in second_request] == ["system", "user", "assistant", "user"]

    async def test_transport_error_does_not_end_session(self):
        server = ScriptedServer([httpx.Response(500), text_body("recovered")])
        handler = _handler(server.client(), "first", "second")
        assert await handler.run_loop() == 0

        assert server.call_count == 2
        assert handler.transcript[-1].content == "recovered"
        assert "500" in _rendered(handler)

    async def test_exhausted_turn_reported(self):
        server = ScriptedServer([tool_call_body("echo", {"message": "again"})])
        handler = _handler(server.client(), "loop", max_iterations=2)
        assert await handler.run_loop() == 0
        assert server.call_count == 2
        assert "maximum of 2" in _rendered(handler)


class TestCommands:
    async def test_quit_stops_loop(self):
        server = ScriptedServer([text_body("unused")])
        handler = _handler(server.client(), "/quit", "never read")
        assert await handler.run_loop() == 0
        assert server.call_count == 0
        assert handler._input.lines == ["never read"]

    async def test_tools_lists_registry(self):
        server = ScriptedServer([text_body("unused")])
        handler = _handler(server.client(), "/tools")
        await handler.run_loop()
        assert "echo" in _rendered(handler)
        assert server.call_count == 0

    async def test_help(self):
        server = ScriptedServer([text_body("unused")])
        handler = _handler(server.client(), "/help")
        await handler.run_loop()
        assert "/quit" in _rendered(handler)

    async def test_unknown_command_sent_as_text(self):
        server = ScriptedServer([text_body("sure")])
        handler = _handler(server.client(), "/etc/hosts please")
        await handler.run_loop()
        assert server.call_count == 1
        assert handler.transcript[1].content == "/etc/hosts please"


class TestTurnTimeout:
    async def test_slow_turn_times_out(self):
        release = asyncio.Event()

        async def body():
            await release.wait()
            yield b"data: [DONE]\n\n"

        def handler(request):
            return httpx.Response(200, content=body())

        client = LLMClient(url=TEST_URL, model="m", transport=httpx.MockTransport(handler))
        chat = _handler(client, turn_timeout=0.05)

        result = await chat.handle_input("hello")

        assert result is None
        assert "timed out" in _rendered(chat)
        # The user message stays; nothing else was recorded.
        assert [m.kind for m in chat.transcript] == [KIND_SYSTEM, KIND_USER]
        release.set()
        await client.aclose()

    async def test_timeout_during_tool_closes_out_the_call(self):
        server = ScriptedServer([tool_call_body("slow", {}, "s1"), text_body("next turn")])
        chat = _handler(server.client(), turn_timeout=0.2)

        assert await chat.handle_input("do the slow thing") is None

        kinds = [m.kind for m in chat.transcript]
        assert kinds == [KIND_SYSTEM, KIND_USER, KIND_TOOL_REQUEST, KIND_TOOL_RESULT]
        assert chat.transcript[-1].tool_call_id == "s1"
        envelope = json.loads(chat.transcript[-1].content)
        assert envelope["status"] == "FAILED"
        assert envelope["data"]["code"] == "timeout"

        # The next request replays a complete request/result pair.
        chat.turn_timeout = None
        await chat.handle_input("try something else")
        replay = server.requests[1]["messages"]
        assert [m["role"] for m in replay[2:4]] == ["assistant", "tool"]
        assert replay[3]["tool_call_id"] == "s1"
        await chat.engine.client.aclose()
