from __future__ import annotations

import logging

from toolchat.llm.types import ToolCall
from toolchat.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self, tool_timeout: float | None = None):
        self._tools: dict[str, Tool] = {}
        self.tool_timeout = tool_timeout

    def register(self, *tools: Tool) -> None:
        for tool in tools:
            if tool.name in self._tools:
                logger.debug("Replacing registered tool: %s", tool.name)
            self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def definitions(self) -> list[dict]:
        return [t.definition() for t in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def dispatch(self, invocation: ToolCall, results: list[dict]) -> dict | None:
        """
        Run *invocation* and append its tool-result message to *results*.

        Unknown tool names are skipped: nothing is appended and ``None`` is
        returned.
        """
        tool = self.get(invocation.name)
        if tool is None:
            logger.info("Skipping call to unknown tool: %s", invocation.name)
            return None
        message = await tool.call(invocation, timeout=self.tool_timeout)
        results.append(message)
        return message
