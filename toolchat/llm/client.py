"""
Streaming client for OpenAI-compatible chat-completion endpoints.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions``
wire protocol -- OpenAI itself, DeepSeek, Ollama, vLLM, LM Studio, etc.

``LLMClient.call`` returns as soon as the response headers are in.  The body
is decoded by a background task that hands ``Fragment`` objects to the
caller through a small bounded queue, so a slow consumer naturally throttles
the read side.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from toolchat.llm.decode import decode_event, is_done, parse_line
from toolchat.llm.errors import LLMError, StreamDecodeError, TransportError
from toolchat.llm.tool_call_assembler import ToolCallAssembler
from toolchat.llm.types import Choice, Delta, Fragment

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 10

_EOF = object()


class FragmentStream:
    """
    Finite, single-consumer async iterator over decoded fragments.

    Tool-call shards are assembled before delivery: a fragment that carries
    tool calls always carries complete calls with parsed arguments.  Any
    other fragment is delivered as soon as it is decoded, in server order.

    A decode error ends the stream; it is kept in ``error`` for inspection
    and never raised to the consumer.
    """

    def __init__(
        self, response: httpx.Response, buffer_size: int = DEFAULT_BUFFER_SIZE
    ) -> None:
        self._response = response
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, buffer_size))
        self._assembler = ToolCallAssembler()
        self._closed = False
        self._last_id: str | None = None
        self._last_model: str | None = None
        self.error: LLMError | None = None
        self._task = asyncio.create_task(self._pump())

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def __aiter__(self) -> FragmentStream:
        return self

    async def __anext__(self) -> Fragment:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _EOF:
            self._closed = True
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> FragmentStream:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """
        Abort the body read and end the stream.

        Buffered fragments are discarded and a consumer blocked on the next
        fragment sees a clean end-of-stream.
        """
        if not self._task.done():
            self._task.cancel()
        self._closed = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(_EOF)

    async def aclose(self) -> None:
        self.cancel()
        await asyncio.gather(self._task, return_exceptions=True)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def _pump(self) -> None:
        try:
            await self._read()
        except StreamDecodeError as e:
            logger.warning("Closing stream on decode error: %s", e)
            self.error = e
        except httpx.HTTPError as e:
            logger.warning("Stream read failed: %s", e)
            self.error = TransportError(f"stream read failed: {e}")
        except Exception as e:
            logger.warning("Closing stream on malformed fragment: %r", e)
            self.error = StreamDecodeError(f"malformed fragment: {e!r}")
        finally:
            await self._response.aclose()
            # cancel() has already queued the end marker.
            if not self._closed:
                await self._queue.put(_EOF)

    async def _read(self) -> None:
        async for line in self._response.aiter_lines():
            if is_done(line):
                break
            try:
                data = parse_line(line)
            except StreamDecodeError as e:
                raise StreamDecodeError(f"{e}: {line[:200]!r}") from e
            if data is None:
                continue

            fragment, tool_deltas = decode_event(data)
            self._last_id = fragment.id or self._last_id
            self._last_model = fragment.model or self._last_model

            for td in tool_deltas:
                self._assembler.feed(td)

            # Finished choices release their assembled calls first.
            for choice in fragment.choices:
                if choice.delta.finish_reason and self._assembler.pending:
                    await self._emit_calls(choice.index)

            if tool_deltas and not _has_payload(fragment):
                continue
            await self._queue.put(fragment)

        if self._assembler.pending:
            await self._emit_calls(None)

    async def _emit_calls(self, choice_index: int | None) -> None:
        if choice_index is None:
            indices = self._assembler.pending_choices()
        else:
            indices = [choice_index]

        choices: list[Choice] = []
        for ci in indices:
            calls = self._assembler.flush(ci)
            if self._assembler.errors:
                errors = list(self._assembler.errors)
                logger.warning("Tool-call assembly errors: %s", errors)
                raise StreamDecodeError(f"malformed tool call arguments: {errors}")
            if calls:
                choices.append(Choice(index=ci, delta=Delta(tool_calls=calls)))

        if choices:
            await self._queue.put(
                Fragment(id=self._last_id, model=self._last_model, choices=choices)
            )


def _has_payload(fragment: Fragment) -> bool:
    if fragment.usage is not None:
        return True
    for choice in fragment.choices:
        d = choice.delta
        if d.content or d.reasoning or d.finish_reason:
            return True
    return False


class LLMClient:
    """
    Stream-capable client for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Full chat-completions URL, e.g.
        ``"http://localhost:11434/v1/chat/completions"``.
    model:
        Model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP timeout in seconds (connect, and each read on the body).
    buffer_size:
        Capacity of the queue between the body decoder and the consumer.
    transport:
        Optional ``httpx`` transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        model: str,
        api_key: str = "",
        timeout: float = 120.0,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._model = model
        self._api_key = api_key
        self._buffer_size = buffer_size
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def model(self) -> str:
        return self._model

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> LLMClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def build_request(self, messages: list[dict], tools: list[dict] | None) -> dict:
        body: dict = {
            "model": self._model,
            "messages": messages,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        return body

    # ------------------------------------------------------------------
    # Streaming call
    # ------------------------------------------------------------------

    async def call(self, body: dict) -> FragmentStream:
        """
        POST *body* and return a ``FragmentStream`` over the SSE response.

        Raises ``TransportError`` if the request fails or the status is not
        200; the body of a failed response is not read.
        """
        logger.info(
            "REQUEST: model=%s messages=%d tools=%d auth=%s",
            body.get("model"),
            len(body.get("messages") or []),
            len(body.get("tools") or []),
            "yes" if self._api_key else "no",
        )
        request = self._client.build_request(
            "POST", self._url, json=body, headers=self.build_headers()
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.warning("LLM request failed: %s", e)
            raise TransportError(f"LLM request failed: {e}") from e

        if response.status_code != 200:
            await response.aclose()
            logger.warning("LLM endpoint returned HTTP %d", response.status_code)
            raise TransportError(
                f"LLM endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return FragmentStream(response, buffer_size=self._buffer_size)
