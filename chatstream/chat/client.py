"""
Streaming chat client for Dify-style chat-message endpoints.

One ``send`` call performs exactly one POST, decodes the event-stream body
incrementally and dispatches each event to the caller's callbacks:

    Idle -> Validating -> Requesting -> Streaming -> Completed | Failed

Streaming completes on end-of-stream or on a ``message_end`` event. Any
failure is terminal for the call; there are no retries.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import aclosing
from typing import Any

import httpx

from ..config import ClientConfig
from ..logging_utils import ContextualLogger, operation_context
from .exceptions import (
    ChatClientError,
    EmptyQueryError,
    InvalidCallbackError,
    MissingApiKeyError,
    StreamCancelledError,
    StreamingError,
    StreamTimeoutError,
    StreamUnavailableError,
    TransportError,
    UpstreamError,
)
from .models import (
    ChatEvent,
    ChatRequest,
    ChatResult,
    ErrorEvent,
    MessageEndEvent,
    MessageEvent,
    OnEnd,
    OnError,
    OnMessage,
    StreamCallbacks,
)
from .streaming.models import StreamState
from .streaming.parser import SSEFrameParser

MAX_ERROR_BODY = 1000
UNKNOWN_UPSTREAM_ERROR = "Unknown upstream error"


async def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Call a sync or async callback, awaiting its result if needed."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StreamingChatClient:
    """
    Single-call, single-stream chat client.

    Each ``send`` owns its own HTTP client, parser and stream state, so
    concurrent calls share nothing mutable.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self._transport = transport

    def build_headers(self, api_key: str) -> dict[str, str]:
        """Headers for an event-stream chat request."""
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "Authorization": f"Bearer {api_key}",
        }

    def _build_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.config.connect_timeout,
            read=self.config.read_timeout,
            write=self.config.write_timeout,
            pool=self.config.pool_timeout,
        )

    async def send(
        self,
        request: ChatRequest,
        callbacks: StreamCallbacks,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ChatResult:
        """
        Send one streaming chat request and dispatch its events.

        Args:
            request: The chat request
            callbacks: ``on_message`` (required), ``on_end``, ``on_error``
            cancel: Optional signal; setting it aborts the stream

        Returns:
            ChatResult with the concatenated answer and conversation id

        Raises:
            RequestValidationError: Before any network activity
            TransportError: Non-success status or network failure
            StreamUnavailableError: Body cannot be read incrementally
            StreamTimeoutError: A configured timeout elapsed
            StreamCancelledError: ``cancel`` was set
            StreamingError: Any other failure inside the read loop
        """
        log = ContextualLogger({
            "endpoint": self.config.url,
            "user": request.user,
            "conversation_id": request.conversation_id,
        })

        async with operation_context(
            "chat_stream",
            context={"endpoint": self.config.url, "user": request.user},
        ):
            await self._validate(request, callbacks)

            if cancel is None:
                return await self._run(request, callbacks, log)
            return await self._run_cancellable(request, callbacks, cancel, log)

    async def _validate(
        self, request: ChatRequest, callbacks: StreamCallbacks
    ) -> None:
        """Fail fast before any I/O, notifying ``on_error`` first."""
        error: ChatClientError | None = None

        if not request.api_key or not request.api_key.strip():
            error = MissingApiKeyError(
                "api_key must not be empty; pass a valid API key"
            )
        elif not request.query or not request.query.strip():
            error = EmptyQueryError("query must not be empty")
        elif not callable(callbacks.on_message):
            error = InvalidCallbackError("on_message must be callable")

        if error is not None:
            await _invoke(callbacks.on_error, error, None)
            raise error

    async def _run_cancellable(
        self,
        request: ChatRequest,
        callbacks: StreamCallbacks,
        cancel: asyncio.Event,
        log: ContextualLogger,
    ) -> ChatResult:
        stream_task = asyncio.create_task(self._run(request, callbacks, log))
        cancel_task = asyncio.create_task(cancel.wait())

        try:
            done, _ = await asyncio.wait(
                {stream_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            stream_task.cancel()
            cancel_task.cancel()
            await asyncio.gather(stream_task, cancel_task, return_exceptions=True)
            raise

        if stream_task in done:
            cancel_task.cancel()
            return stream_task.result()

        # Cancelling the task unwinds the response context and releases the connection
        stream_task.cancel()
        await asyncio.wait({stream_task})

        error = StreamCancelledError("Stream cancelled by caller")
        log.warning("Stream cancelled by caller")
        await _invoke(callbacks.on_error, error, None)
        raise error

    async def _run(
        self,
        request: ChatRequest,
        callbacks: StreamCallbacks,
        log: ContextualLogger,
    ) -> ChatResult:
        state = StreamState(conversation_id=request.conversation_id)
        parser = SSEFrameParser(state)

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._build_timeout()
            ) as client:
                async with client.stream(
                    "POST",
                    self.config.url,
                    json=request.to_body(self.config.env),
                    headers=self.build_headers(request.api_key),
                ) as response:
                    await self._check_response(response)
                    chunks = self._open_byte_stream(response, self.config.chunk_size)
                    await self._consume(chunks, parser, callbacks, log)

        except TransportError:
            # HTTP status rejections surface only through the raised error
            raise
        except httpx.TimeoutException as e:
            error = StreamTimeoutError(f"Stream timed out: {e}")
            await _invoke(callbacks.on_error, error, None)
            raise error from e
        except httpx.TransportError as e:
            error = TransportError(f"HTTP transport failure: {e}")
            await _invoke(callbacks.on_error, error, None)
            raise error from e
        except ChatClientError as e:
            await _invoke(callbacks.on_error, e, None)
            raise
        except Exception as e:
            error = StreamingError(f"Streaming failed: {e}")
            await _invoke(callbacks.on_error, error, None)
            raise error from e
        finally:
            state.close()

        log.debug(
            "Stream completed",
            frames_seen=state.frames_seen,
            answer_length=len(state.full_response),
            **parser.get_stats(),
        )
        return ChatResult(
            answer=state.full_response,
            conversation_id=state.conversation_id,
            message_id=state.message_id,
            task_id=state.task_id,
        )

    @staticmethod
    async def _check_response(response: httpx.Response) -> None:
        """Reject non-success statuses before any body is dispatched."""
        if response.is_success:
            return

        body = await response.aread()
        raise TransportError(
            f"HTTP error! status: {response.status_code}",
            status_code=response.status_code,
            response_data={"body": body.decode(errors="replace")[:MAX_ERROR_BODY]},
        )

    @staticmethod
    def _open_byte_stream(
        response: httpx.Response, chunk_size: int | None = None
    ) -> AsyncIterator[bytes]:
        """Return an incremental reader over the response body."""
        if not isinstance(response.stream, httpx.AsyncByteStream):
            raise StreamUnavailableError(
                "Response body does not support incremental reading"
            )
        return response.aiter_bytes(chunk_size=chunk_size)

    async def _consume(
        self,
        chunks: AsyncIterator[bytes],
        parser: SSEFrameParser,
        callbacks: StreamCallbacks,
        log: ContextualLogger,
    ) -> None:
        state = parser.state

        async with aclosing(parser.iter_events(chunks)) as events:
            async for event in events:
                state.frames_seen += 1
                self._track_ids(state, event)

                if isinstance(event, MessageEndEvent):
                    state.close()
                    await _invoke(callbacks.on_end, event)
                elif isinstance(event, ErrorEvent):
                    error = UpstreamError(
                        event.message or UNKNOWN_UPSTREAM_ERROR,
                        status_code=event.status,
                        code=event.code,
                        event=event,
                    )
                    log.error(
                        "Upstream reported error",
                        status=event.status,
                        code=event.code,
                        error_message=error.message,
                    )
                    await _invoke(callbacks.on_error, error, event)
                elif isinstance(event, MessageEvent):
                    if event.answer:
                        state.append_answer(event.answer)

                if not state.active:
                    return

                # Error frames reach on_message too
                await _invoke(callbacks.on_message, event)

    @staticmethod
    def _track_ids(state: StreamState, event: ChatEvent) -> None:
        if event.conversation_id:
            state.conversation_id = event.conversation_id
        if event.message_id:
            state.message_id = event.message_id
        if event.task_id:
            state.task_id = event.task_id


async def send_stream_message(
    *,
    query: str,
    api_key: str,
    on_message: OnMessage,
    on_end: OnEnd | None = None,
    on_error: OnError | None = None,
    inputs: Mapping[str, Any] | None = None,
    conversation_id: str = "",
    user: str = "",
    env: str | None = None,
    config: ClientConfig | None = None,
    cancel: asyncio.Event | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatResult:
    """Keyword-style convenience wrapper around ``StreamingChatClient.send``."""
    request = ChatRequest(
        query=query,
        api_key=api_key,
        inputs=dict(inputs or {}),
        conversation_id=conversation_id,
        user=user,
        env=env,
    )
    callbacks = StreamCallbacks(on_message=on_message, on_end=on_end, on_error=on_error)
    client = StreamingChatClient(config, transport=transport)
    return await client.send(request, callbacks, cancel=cancel)
