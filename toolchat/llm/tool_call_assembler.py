"""
Assembles streaming tool-call shards into complete ToolCall objects.

Design goals:
  - Accumulate ``ToolCallDelta`` shards keyed by ``(choice_index, index)``.
  - The ``id`` arrives once; ``name`` and ``arguments`` pieces are
    concatenated as raw strings.
  - JSON-parse the accumulated argument string only when the owning choice
    finishes (``flush(choice_index)``) or the stream ends (``flush()``).
  - A shard carrying a *different* id under an already-used key starts a new
    call; servers that emit every call as a self-contained fragment at
    index 0 are handled that way.
  - If parsing fails, or the arguments are not a JSON object, the call is
    dropped and an error is recorded in ``self.errors``.
"""

from __future__ import annotations

import json

from toolchat.llm.types import ToolCall, ToolCallDelta

_Key = tuple[int, int]


class ToolCallAssembler:
    """Buffers raw tool-call shards and emits finished ``ToolCall`` objects."""

    def __init__(self) -> None:
        self._buf: dict[_Key, dict] = {}
        self._closed: list[tuple[_Key, dict]] = []
        self._seq = 0
        self.errors: list[str] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, delta: ToolCallDelta) -> None:
        """Feed a single shard into the assembler."""
        key = (delta.choice_index, delta.index)
        buf = self._buf.get(key)

        if buf is not None and delta.id and buf["id"] and delta.id != buf["id"]:
            self._closed.append((key, self._buf.pop(key)))
            buf = None

        if buf is None:
            buf = {"id": None, "type": None, "name": "", "args": "", "seq": self._seq}
            self._seq += 1
            self._buf[key] = buf

        if delta.id and not buf["id"]:
            buf["id"] = delta.id
        if delta.type and not buf["type"]:
            buf["type"] = delta.type
        if delta.name:
            buf["name"] += delta.name
        if delta.arguments:
            buf["args"] += delta.arguments

    @property
    def pending(self) -> bool:
        return bool(self._buf or self._closed)

    def pending_choices(self) -> list[int]:
        """Choice indices that still have buffered calls."""
        keys = list(self._buf) + [key for key, _ in self._closed]
        return sorted({key[0] for key in keys})

    def flush(self, choice_index: int | None = None) -> list[ToolCall]:
        """
        Finalize buffered calls, in arrival order.

        With *choice_index* only that choice's calls are finalized; otherwise
        everything still buffered is.  Returns the successfully parsed calls.
        """
        entries: list[tuple[_Key, dict]] = []
        kept: list[tuple[_Key, dict]] = []
        for key, buf in self._closed:
            if choice_index is None or key[0] == choice_index:
                entries.append((key, buf))
            else:
                kept.append((key, buf))
        self._closed = kept

        for key in list(self._buf):
            if choice_index is None or key[0] == choice_index:
                entries.append((key, self._buf.pop(key)))

        entries.sort(key=lambda e: e[1]["seq"])
        calls: list[ToolCall] = []
        for key, buf in entries:
            call = self._finalize(key, buf)
            if call is not None:
                calls.append(call)
        return calls

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finalize(self, key: _Key, buf: dict) -> ToolCall | None:
        raw_args = buf["args"] or "{}"
        try:
            args = json.loads(raw_args)
        except (json.JSONDecodeError, ValueError) as exc:
            self.errors.append(f"tool_call_json_parse_failed key={key} err={exc}")
            return None

        if not isinstance(args, dict):
            self.errors.append(
                f"tool_call_arguments_not_object key={key} type={type(args).__name__}"
            )
            return None

        return ToolCall(
            id=buf["id"] or f"call_{key[0]}_{key[1]}",
            name=buf["name"].strip(),
            arguments=args,
            index=key[1],
            type=buf["type"] or "function",
        )
