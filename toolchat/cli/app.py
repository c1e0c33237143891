"""
Main CLI application for toolchat.

Usage:
    toolchat

Configuration comes from ``toolchat.yaml`` (if present) and the
``LLM_API_KEY``, ``LLM_API_URL`` and ``LLM_MODEL`` environment variables.
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from toolchat import __version__
from toolchat.config import ToolchatConfig, find_config_path, load_config

app = typer.Typer(
    name="toolchat",
    help="Streaming chat agent with local tool calling",
    add_completion=False,
)

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


async def _run(cfg: ToolchatConfig) -> int:
    """Wire up the stack and run the chat loop."""
    from toolchat.cli.chat import ChatHandler
    from toolchat.cli.output import OutputFormatter
    from toolchat.llm.client import LLMClient
    from toolchat.llm.types import Transcript
    from toolchat.orchestrator.core import TurnEngine
    from toolchat.tools.builtins import builtin_tools
    from toolchat.tools.registry import ToolRegistry

    output = OutputFormatter(console)

    registry = ToolRegistry(tool_timeout=cfg.agent.tool_timeout_seconds)
    registry.register(*builtin_tools(cfg.agent.tool_root))

    async with LLMClient(
        url=cfg.llm.api_url,
        model=cfg.llm.model,
        api_key=cfg.llm.api_key,
        timeout=cfg.llm.timeout_seconds,
        buffer_size=cfg.agent.stream_buffer,
    ) as client:
        engine = TurnEngine(
            client=client,
            registry=registry,
            output=output,
            max_iterations=cfg.agent.max_iterations,
            chunk_separator=cfg.agent.chunk_separator,
        )
        handler = ChatHandler(
            engine=engine,
            transcript=Transcript(cfg.agent.system_prompt),
            output=output,
            turn_timeout=cfg.agent.turn_timeout_seconds,
        )
        return await handler.run_loop()


@app.command()
def chat():
    """Start an interactive chat session."""
    cfg = load_config(find_config_path())
    _setup_logging(cfg.logging.level)
    logging.getLogger(__name__).info(
        "toolchat v%s model=%s url=%s", __version__, cfg.llm.model, cfg.llm.api_url
    )
    logging.getLogger(__name__).debug("config: %s", cfg.to_dict())

    try:
        code = asyncio.run(_run(cfg))
    except KeyboardInterrupt:
        raise typer.Exit(130)
    except Exception as e:
        logging.getLogger(__name__).exception("Fatal error")
        console.print(Text.assemble(("Fatal: ", "red"), str(e)))
        raise typer.Exit(1)
    raise typer.Exit(code)


def main():
    app()


if __name__ == "__main__":
    main()
