import asyncio
import logging
from abc import ABC, abstractmethod

from toolchat.llm.types import ROLE_TOOL, ToolCall
from toolchat.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    s.setdefault("additionalProperties", False)
    return s


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult: ...

    def definition(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
            },
        }

    async def run(self, arguments: dict, timeout: float | None = None) -> ToolResult:
        """Validate and execute; every failure comes back as a FAILED result."""
        from toolchat.tools.validation import ToolValidator

        valid, error_msg = ToolValidator.validate(self, arguments)
        if not valid:
            return ToolResult.fail(
                f"invalid arguments: {error_msg}", ErrorCode.VALIDATION_ERROR
            )

        try:
            return await asyncio.wait_for(self.execute(**arguments), timeout=timeout)
        except asyncio.TimeoutError:
            return ToolResult.fail(f"timed out after {timeout}s", ErrorCode.TIMEOUT)
        except Exception as e:
            logger.warning("Tool %s raised: %s", self.name, e)
            return ToolResult.fail(str(e) or type(e).__name__, ErrorCode.TOOL_EXCEPTION)

    async def call(self, invocation: ToolCall, timeout: float | None = None) -> dict:
        result = await self.run(invocation.arguments, timeout)
        return {
            "role": ROLE_TOOL,
            "tool_call_id": invocation.id,
            "content": result.to_content(),
        }
