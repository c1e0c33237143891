"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from toolchat.cli.output import OutputFormatter
from toolchat.llm.errors import TransportError
from toolchat.llm.types import Message, Transcript
from toolchat.orchestrator.core import TurnEngine, TurnExhaustedError, TurnResult

logger = logging.getLogger(__name__)


class ChatHandler:
    """
    Manages the interactive chat loop.

    Owns the transcript: each non-blank input line is appended as a user
    message, the turn engine runs it to completion, and the usage summary
    for the turn is printed.
    """

    def __init__(
        self,
        engine: TurnEngine,
        transcript: Transcript,
        output: OutputFormatter | None = None,
        turn_timeout: float | None = None,
        input_func: Callable[[str], str] = input,
    ) -> None:
        self.engine = engine
        self.transcript = transcript
        self.output = output or engine.output
        self.turn_timeout = turn_timeout or None
        self._input = input_func
        self._running = True

    async def read_line(self) -> str | None:
        """Read one line from the user; ``None`` on EOF or interrupt."""
        prompt = self.output.prompt()
        try:
            return await asyncio.get_running_loop().run_in_executor(
                None, lambda: self._input(prompt)
            )
        except (EOFError, KeyboardInterrupt):
            return None

    def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        cmd = command.strip().split(None, 1)[0].lower()

        if cmd == "/quit":
            self._running = False
            self.output.info("Goodbye.")
            return True

        if cmd == "/tools":
            self.output.tool_list(self.engine.registry.list())
            return True

        if cmd == "/help":
            self.output.help()
            return True

        return False

    async def handle_input(self, text: str) -> TurnResult | None:
        """Append *text* as a user message and run one turn."""
        self.transcript.append(Message.user(text))
        self.output.agent_prefix()

        try:
            result = await asyncio.wait_for(
                self.engine.run_turn(self.transcript), timeout=self.turn_timeout
            )
        except (TransportError, TurnExhaustedError) as e:
            self.output.error(f"\n{e}")
            return None
        except asyncio.TimeoutError:
            logger.warning("Turn timed out after %ss", self.turn_timeout)
            self.output.error(f"\nTurn timed out after {self.turn_timeout}s")
            return None

        self.output.usage(result.usage)
        return result

    async def run_loop(self) -> int:
        """Main interactive loop. Returns the process exit code."""
        self.output.info("Type /help for commands, /quit or Ctrl-D to exit.")

        while self._running:
            line = await self.read_line()
            if line is None:
                self.output.info("\nGoodbye.")
                break

            text = line.strip()
            if not text:
                continue

            if text.startswith("/") and self.handle_command(text):
                continue

            await self.handle_input(line)

        return 0
