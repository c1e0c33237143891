"""Tool contract, registry, and the built-in tools."""

from toolchat.tools.base import Tool
from toolchat.tools.registry import ToolRegistry

__all__ = ["Tool", "ToolRegistry"]
