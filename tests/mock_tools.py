"""Mock tool implementations for testing."""

import asyncio

from toolchat.tools.base import Tool
from toolchat.types import ToolResult


class EchoTool(Tool):
    def __init__(self):
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the input message back."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
            },
            "required": ["message"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        self.calls.append(kwargs)
        return ToolResult.ok(message=kwargs.get("message", ""))


class ExplodingTool(Tool):
    @property
    def name(self) -> str:
        return "explode"

    @property
    def description(self) -> str:
        return "Always raises."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        raise RuntimeError("kaboom")


class SlowTool(Tool):
    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Sleeps longer than any sensible timeout."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        await asyncio.sleep(10)
        return ToolResult.ok()


class ExtraKeysTool(Tool):
    """A tool that explicitly allows additionalProperties in its schema."""

    @property
    def name(self) -> str:
        return "flexible"

    @property
    def description(self) -> str:
        return "Accepts arbitrary extra keys."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "base_param": {"type": "string", "description": "A base parameter"},
            },
            "required": ["base_param"],
            "additionalProperties": True,
        }

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult.ok(received=sorted(kwargs))
