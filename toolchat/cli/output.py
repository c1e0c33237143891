"""Output formatting utilities for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from toolchat.llm.types import ToolCall, UsageTotals
from toolchat.tools.base import Tool

STYLE_AGENT = "cyan"
STYLE_REASONING_HEADER = "magenta"
STYLE_REASONING = "bright_black"
STYLE_ANSWER_HEADER = "cyan"
STYLE_TOOL_LABEL = "yellow"
STYLE_TOOL_NAME = "cyan"
STYLE_DETAIL = "bright_black"
STYLE_ERROR = "bright_red"


class OutputFormatter:
    """Rich-based output formatting for the chat agent."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Prompts and prefixes
    # ------------------------------------------------------------------

    def prompt(self) -> str:
        """Prompt string for ``input``; ANSI-colored when the console is a terminal."""
        if self.console.is_terminal:
            return "\033[32mYou>\033[0m "
        return "You> "

    def agent_prefix(self) -> None:
        self.console.print()
        self.console.print(Text("Agent>", style=STYLE_AGENT), end=" ")

    # ------------------------------------------------------------------
    # Streamed sections
    # ------------------------------------------------------------------

    def reasoning_header(self) -> None:
        self.console.print()
        self.console.rule("Reasoning", style=STYLE_REASONING_HEADER)

    def reasoning(self, text: str) -> None:
        self.console.print(
            text, style=STYLE_REASONING, end="", markup=False, highlight=False
        )

    def answer_header(self) -> None:
        self.console.print("\n")
        self.console.rule("Answer", style=STYLE_ANSWER_HEADER)

    def answer(self, text: str) -> None:
        self.console.print(text, end="", markup=False, highlight=False)

    def answer_done(self) -> None:
        self.console.print()

    def tool_call(self, call: ToolCall) -> None:
        self.console.print()
        self.console.print(
            Text.assemble(
                ("[Tool Call]", STYLE_TOOL_LABEL),
                " ",
                (call.name, STYLE_TOOL_NAME),
                "(",
                (call.arguments_json(), STYLE_DETAIL),
                ")",
            )
        )

    def tool_result(self, message: dict) -> None:
        self.console.print(
            Text.assemble(
                ("[Tool Result]", STYLE_TOOL_LABEL),
                " ",
                (str(message.get("content", "")), STYLE_DETAIL),
            )
        )

    def tool_skipped(self, call: ToolCall) -> None:
        self.console.print(
            Text.assemble(
                ("[Tool Result]", STYLE_TOOL_LABEL),
                " ",
                (f"unknown tool {call.name!r}, skipped", STYLE_DETAIL),
            )
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def usage(self, totals: UsageTotals) -> None:
        self.console.print()
        self.console.rule("Usage", style=STYLE_DETAIL)
        self.console.print(
            Text(f"Completion_Tokens: {totals.completion_tokens}", style="yellow")
        )
        self.console.print(
            Text(f"Prompt_Tokens: {totals.prompt_tokens}", style="magenta")
        )
        self.console.print(Text(f"Total_Tokens: {totals.total_tokens}", style="blue"))
        self.console.print()

    def error(self, message: str) -> None:
        self.console.print(Text(message, style=STYLE_ERROR))

    def info(self, message: str) -> None:
        self.console.print(Text(message, style="dim"))

    def tool_list(self, tools: list[Tool]) -> None:
        if not tools:
            self.info("No tools registered.")
            return

        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style=STYLE_TOOL_NAME, no_wrap=True)
        table.add_column("Parameters", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            params = ", ".join((t.parameters or {}).get("properties", {}))
            table.add_row(t.name, params, t.description)

        self.console.print(table)

    def help(self) -> None:
        self.console.print(
            "  [bold]Commands:[/bold]\n"
            "  /quit     - Exit the chat\n"
            "  /tools    - List available tools\n"
            "  /help     - Show this help\n"
        )
