"""
Decoding of Server-Sent Event lines into ``Fragment`` objects.

Each event of interest has the form::

    data: {json}

The sentinel ``data: [DONE]`` marks the end of the stream.  Blank lines,
SSE comments (``: keep-alive``) and other field lines carry nothing for us.
"""

from __future__ import annotations

import json

from toolchat.llm.errors import StreamDecodeError
from toolchat.llm.types import Choice, Delta, Fragment, ToolCallDelta, Usage

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def parse_line(line: str) -> dict | None:
    """
    Return the JSON payload of a ``data:`` line.

    Returns ``None`` for lines that carry no payload (blank lines, comments,
    non-data fields, the ``[DONE]`` sentinel).  Raises ``StreamDecodeError``
    if the payload is not a JSON object.
    """
    line = line.rstrip("\r")
    if not line or not line.startswith(DATA_PREFIX):
        return None

    data_str = line[len(DATA_PREFIX):].strip()
    if data_str == DONE_SENTINEL:
        return None

    try:
        data = json.loads(data_str)
    except json.JSONDecodeError as e:
        raise StreamDecodeError(f"invalid JSON in SSE line: {e}") from e
    if not isinstance(data, dict):
        raise StreamDecodeError("SSE payload is not a JSON object")
    return data


def is_done(line: str) -> bool:
    line = line.rstrip("\r")
    return line.startswith(DATA_PREFIX) and line[len(DATA_PREFIX):].strip() == DONE_SENTINEL


def decode_event(data: dict) -> tuple[Fragment, list[ToolCallDelta]]:
    """
    Convert a parsed SSE payload into a ``Fragment``.

    Tool-call shards are split off and returned separately, unparsed, so they
    can be assembled across fragments.  The returned fragment never carries
    tool calls itself.
    """
    raw_choices = data.get("choices") or []
    if not isinstance(raw_choices, list):
        raise StreamDecodeError("'choices' is not a list")

    choices: list[Choice] = []
    tool_deltas: list[ToolCallDelta] = []

    for pos, raw_choice in enumerate(raw_choices):
        if not isinstance(raw_choice, dict):
            raise StreamDecodeError("choice is not an object")
        choice_index = _index(raw_choice, "index", pos)
        raw_delta = raw_choice.get("delta") or {}
        if not isinstance(raw_delta, dict):
            raise StreamDecodeError("'delta' is not an object")

        # Some providers put finish_reason on the delta, OpenAI on the choice.
        finish_reason = _text(raw_choice, "finish_reason") or _text(raw_delta, "finish_reason")

        delta = Delta(
            role=_text(raw_delta, "role") or None,
            content=_text(raw_delta, "content"),
            reasoning=_text(raw_delta, "reasoning") or _text(raw_delta, "reasoning_content"),
            finish_reason=finish_reason or None,
        )
        choices.append(Choice(index=choice_index, delta=delta))

        raw_tool_calls = raw_delta.get("tool_calls") or []
        if not isinstance(raw_tool_calls, list):
            raise StreamDecodeError("'tool_calls' is not a list")
        for raw_tc in raw_tool_calls:
            tool_deltas.append(_decode_tool_delta(raw_tc, choice_index))

    usage = None
    raw_usage = data.get("usage")
    if isinstance(raw_usage, dict):
        try:
            usage = Usage.from_dict(raw_usage)
        except (TypeError, ValueError) as e:
            raise StreamDecodeError(f"invalid usage block: {e}") from e

    fragment = Fragment(
        id=data.get("id"),
        model=data.get("model"),
        choices=choices,
        usage=usage,
    )
    return fragment, tool_deltas


def _decode_tool_delta(raw_tc: dict, choice_index: int) -> ToolCallDelta:
    if not isinstance(raw_tc, dict):
        raise StreamDecodeError("tool call is not an object")
    func = raw_tc.get("function") or {}
    if not isinstance(func, dict):
        raise StreamDecodeError("tool call 'function' is not an object")
    args = func.get("arguments")
    if args is None:
        args = ""
    elif isinstance(args, dict):
        # Already-decoded arguments from lenient servers.
        args = json.dumps(args)
    elif not isinstance(args, str):
        raise StreamDecodeError("tool call arguments must be a JSON string")
    return ToolCallDelta(
        index=_index(raw_tc, "index", 0),
        choice_index=choice_index,
        id=_text(raw_tc, "id") or None,
        type=_text(raw_tc, "type") or None,
        name=_text(func, "name"),
        arguments=args,
    )


def _text(obj: dict, key: str) -> str:
    """String field of a payload object; absent or null reads as ``""``."""
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise StreamDecodeError(f"{key!r} is not a string: {value!r}")
    return value


def _index(obj: dict, key: str, default: int) -> int:
    if key not in obj:
        return default
    value = obj[key]
    # bool is an int subclass but never a valid index.
    if not isinstance(value, int) or isinstance(value, bool):
        raise StreamDecodeError(f"{key!r} is not an integer: {value!r}")
    return value
