"""Core types for the LLM subsystem: transcript messages and stream fragments."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterator

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"

KIND_SYSTEM = "system"
KIND_USER = "user"
KIND_ASSISTANT_TEXT = "assistant-text"
KIND_TOOL_REQUEST = "assistant-tool-request"
KIND_TOOL_RESULT = "tool-result"


@dataclass
class ToolCall:
    """A resolved tool invocation with parsed arguments."""

    id: str
    name: str
    arguments: dict
    index: int = 0
    type: str = "function"

    def arguments_json(self) -> str:
        return json.dumps(self.arguments, ensure_ascii=False)

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments_json()},
        }


@dataclass
class ToolCallDelta:
    """
    A raw tool-call shard as it arrives on the wire.

    ``arguments`` is still the unparsed string piece; the
    ``ToolCallAssembler`` concatenates shards sharing ``(choice_index, index)``.
    """

    index: int = 0
    choice_index: int = 0
    id: str | None = None
    type: str | None = None
    name: str = ""
    arguments: str = ""


@dataclass
class Message:
    """A single transcript entry."""

    role: str
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=ROLE_SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=ROLE_USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=ROLE_ASSISTANT, content=content)

    @classmethod
    def tool_request(cls, calls: list[ToolCall]) -> Message:
        return cls(role=ROLE_ASSISTANT, tool_calls=list(calls))

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        return cls(role=ROLE_TOOL, tool_call_id=tool_call_id, content=content)

    @property
    def kind(self) -> str:
        if self.role == ROLE_ASSISTANT:
            return KIND_TOOL_REQUEST if self.tool_calls else KIND_ASSISTANT_TEXT
        if self.role == ROLE_TOOL:
            return KIND_TOOL_RESULT
        return self.role

    def to_wire(self) -> dict:
        if self.kind == KIND_TOOL_REQUEST:
            return {
                "role": ROLE_ASSISTANT,
                "tool_calls": [tc.to_wire() for tc in self.tool_calls or []],
            }
        if self.kind == KIND_TOOL_RESULT:
            return {
                "role": ROLE_TOOL,
                "tool_call_id": self.tool_call_id,
                "content": self.content or "",
            }
        return {"role": self.role, "content": self.content or ""}

    @classmethod
    def from_wire(cls, data: dict) -> Message:
        """Rebuild a message from its wire shape (the inverse of ``to_wire``)."""
        role = data.get("role", "")
        raw_calls = data.get("tool_calls")
        if role == ROLE_ASSISTANT and raw_calls:
            calls = []
            for idx, raw in enumerate(raw_calls):
                func = raw.get("function") or {}
                args = func.get("arguments") or "{}"
                calls.append(
                    ToolCall(
                        id=raw.get("id", ""),
                        name=func.get("name", ""),
                        arguments=json.loads(args) if isinstance(args, str) else dict(args),
                        index=idx,
                        type=raw.get("type", "function"),
                    )
                )
            return cls.tool_request(calls)
        if role == ROLE_TOOL:
            return cls.tool_result(data.get("tool_call_id", ""), data.get("content", ""))
        return cls(role=role, content=data.get("content", ""))


class Transcript:
    """
    Append-only conversation state.

    The first entry is always the system message.  Tool results are only
    accepted for invocation ids announced by an earlier tool-request record.
    """

    def __init__(self, system_prompt: str) -> None:
        self._messages: list[Message] = [Message.system(system_prompt)]
        self._call_ids: set[str] = set()

    def append(self, message: Message) -> None:
        if message.role == ROLE_SYSTEM:
            raise ValueError("system message may only appear first")
        if message.kind == KIND_TOOL_RESULT and message.tool_call_id not in self._call_ids:
            raise ValueError(
                f"tool result references unknown call id {message.tool_call_id!r}"
            )
        if message.kind == KIND_TOOL_REQUEST:
            self._call_ids.update(tc.id for tc in message.tool_calls or [])
        self._messages.append(message)

    def to_wire(self) -> list[dict]:
        return [m.to_wire() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, idx: int) -> Message:
        return self._messages[idx]


@dataclass
class Usage:
    completion_tokens: int = 0
    prompt_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> Usage:
        return cls(
            completion_tokens=int(data.get("completion_tokens") or 0),
            prompt_tokens=int(data.get("prompt_tokens") or 0),
            total_tokens=int(data.get("total_tokens") or 0),
        )


@dataclass
class UsageTotals:
    """
    Usage samples gathered over one turn.

    Completion and prompt counts are summed over every sample; the total is
    taken verbatim from the last sample.
    """

    samples: list[Usage] = field(default_factory=list)

    def add(self, usage: Usage) -> None:
        self.samples.append(usage)

    @property
    def completion_tokens(self) -> int:
        return sum(u.completion_tokens for u in self.samples)

    @property
    def prompt_tokens(self) -> int:
        return sum(u.prompt_tokens for u in self.samples)

    @property
    def total_tokens(self) -> int:
        return self.samples[-1].total_tokens if self.samples else 0


@dataclass
class Delta:
    role: str | None = None
    content: str = ""
    reasoning: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None


@dataclass
class Choice:
    index: int = 0
    delta: Delta = field(default_factory=Delta)


@dataclass
class Fragment:
    """
    One decoded SSE event.

    When delivered by ``FragmentStream`` any ``tool_calls`` are complete and
    their arguments already parsed into dicts.
    """

    id: str | None = None
    model: str | None = None
    choices: list[Choice] = field(default_factory=list)
    usage: Usage | None = None
