"""Built-in tools: a weather stub and read-only filesystem helpers."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from toolchat.tools.base import Tool
from toolchat.types import ToolResult


class GetCurrentWeatherTool(Tool):
    """Canned weather report; useful for exercising the tool loop."""

    @property
    def name(self) -> str:
        return "get_current_weather"

    @property
    def description(self) -> str:
        return "Get the current weather in a given location"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": "The city and state, e.g. San Francisco, CA",
                },
                "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
            },
            "required": ["location"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        location = kwargs["location"]
        return ToolResult.ok(
            temperature=30,
            description=f"The temperature in {location} is 30",
        )


class _FilesystemTool(Tool):
    def __init__(self, root: str | Path = ".") -> None:
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        return self.root / (path or ".")


class ReadFileTool(_FilesystemTool):
    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return (
            "Read the contents of a given file path. "
            "Use this when you want to see what's inside a file."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The relative path of a file in the working directory.",
                },
            },
            "required": ["path"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        target = self.resolve(kwargs["path"])
        content = await asyncio.to_thread(
            target.read_text, encoding="utf-8", errors="replace"
        )
        return ToolResult.ok(file_content=content)


class ListFileTool(_FilesystemTool):
    @property
    def name(self) -> str:
        return "list_file"

    @property
    def description(self) -> str:
        return (
            "List files and directories at a given path. "
            "If no path is provided, lists files in the current directory."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The relative path of a directory in the working directory.",
                },
            },
            "required": ["path"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        target = self.resolve(kwargs["path"])
        files = await asyncio.to_thread(walk, target)
        return ToolResult.ok(files=files)


def walk(root: Path) -> list[str]:
    """Recursive listing relative to *root*; directories end with ``/``."""
    if not root.exists():
        raise FileNotFoundError(f"no such file or directory: {root}")
    if not root.is_dir():
        return [root.name]

    def _raise(err: OSError) -> None:
        raise err

    entries: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        rel_dir = Path(dirpath).relative_to(root)
        for d in dirnames:
            entries.append((rel_dir / d).as_posix() + "/")
        for f in sorted(filenames):
            entries.append((rel_dir / f).as_posix())
    return sorted(entries)


def builtin_tools(root: str | Path = ".") -> list[Tool]:
    return [GetCurrentWeatherTool(), ReadFileTool(root), ListFileTool(root)]
