"""
Stream Event Processor

Folds a chunked, line-oriented event stream into a PreviewArtifact.

The source yields text (or bytes) in arbitrary pieces. Pieces are joined
and split into lines; an incomplete trailing line is carried over to the
next piece. Only lines starting with the event prefix carry an event, and
their payload is a JSON object ``{"type": ..., "data": ...}``.

Exactly one of ``on_complete`` / ``on_error`` fires per stream, unless the
stream is cancelled, in which case neither fires.
"""

import asyncio
import codecs
import inspect
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional, Union

from pydantic import ValidationError

from models.events import PreviewArtifact, StreamEvent, StreamEventType
from observability.logging_config import get_logger
from observability.metrics import metrics

logger = get_logger(__name__)

DEFAULT_EVENT_PREFIX = "data: "
PARSE_ERROR_MESSAGE = "Error parsing stream data"


class StreamDecodeError(ValueError):
    """A prefixed line did not carry a decodable event."""


class StreamIncompleteError(RuntimeError):
    """The source ended before a terminal event arrived."""


class StreamEventError(RuntimeError):
    """The upstream reported an error event."""


class TransportOpenError(ConnectionError):
    """The stream could not be opened; the caller should fall back."""


class StreamOutcome(str, Enum):
    """How a processed stream ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class StreamCallbacks:
    """Caller hooks; each may be a plain function or a coroutine function."""

    on_update: Optional[Callable[[PreviewArtifact], Any]] = None
    on_complete: Optional[Callable[[PreviewArtifact], Any]] = None
    on_error: Optional[Callable[[Exception], Any]] = None


async def invoke_callback(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Call a callback, awaiting it if it returns an awaitable."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StreamEventProcessor:
    """
    Single-use processor for one preview stream.

    Usage:
        processor = StreamEventProcessor(PreviewArtifact(branch_name="main"), callbacks)
        outcome = await processor.process(response.aiter_bytes())
    """

    def __init__(
        self,
        initial: PreviewArtifact,
        callbacks: StreamCallbacks,
        prefix: str = DEFAULT_EVENT_PREFIX,
    ):
        self._artifact = initial
        self._callbacks = callbacks
        self._prefix = prefix
        self._outcome: Optional[StreamOutcome] = None
        self._cancelled = False
        self._cancel_requested = asyncio.Event()
        self._received_any = False
        self._started = False

    @property
    def artifact(self) -> PreviewArtifact:
        """Latest artifact value."""
        return self._artifact

    @property
    def outcome(self) -> Optional[StreamOutcome]:
        return self._outcome

    def cancel(self) -> None:
        """
        Stop processing; no terminal callback fires afterwards.

        A read that is waiting on the source is abandoned, so ``process``
        returns even when the source has gone quiet.
        """
        if self._outcome is None:
            self._cancelled = True
            self._cancel_requested.set()

    async def process(self, source: AsyncIterable[Union[str, bytes]]) -> StreamOutcome:
        """
        Consume the source until a terminal event, cancellation, or its end.

        Raises:
            TransportOpenError: the source failed before yielding anything
            RuntimeError: the processor was already used
        """
        if self._started:
            raise RuntimeError("StreamEventProcessor instances are single-use")
        self._started = True

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        chunks = source.__aiter__()

        while not self._cancelled:
            try:
                chunk = await self._next_chunk(chunks)
            except StopAsyncIteration:
                break
            except asyncio.CancelledError:
                self._cancel_outcome()
                raise
            except TransportOpenError:
                raise
            except Exception as e:
                if self._cancelled:
                    break
                if not self._received_any:
                    raise TransportOpenError(str(e)) from e
                logger.error("stream_read_failed", error=str(e))
                await self._fail(e)
                return self._outcome

            if self._cancelled:
                break
            self._received_any = True
            buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk

            *lines, buffer = buffer.split("\n")
            for line in lines:
                if await self._process_line(line):
                    return self._outcome
                if self._cancelled:
                    break

        if self._cancelled:
            return self._cancel_outcome()

        buffer += decoder.decode(b"", final=True)
        if buffer and await self._process_line(buffer):
            return self._outcome

        logger.warning("stream_ended_without_terminal_event")
        await self._fail(StreamIncompleteError("Stream ended before completion"))
        return self._outcome

    async def _next_chunk(self, chunks: AsyncIterator[Union[str, bytes]]) -> Optional[Union[str, bytes]]:
        """Next chunk from the source, or None once cancel() interrupts the read."""
        read = asyncio.ensure_future(chunks.__anext__())
        interrupt = asyncio.ensure_future(self._cancel_requested.wait())
        try:
            await asyncio.wait({read, interrupt}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            read.cancel()
            raise
        finally:
            interrupt.cancel()

        if read.done():
            return read.result()

        read.cancel()
        await asyncio.wait({read})
        if not read.cancelled() and read.exception() is not None:
            logger.debug("stream_read_abandoned", error=str(read.exception()))
        return None

    async def _process_line(self, line: str) -> bool:
        """Handle one line. Returns True once the stream has terminated."""
        try:
            event = self._decode_line(line.rstrip("\r"))
        except StreamDecodeError as e:
            logger.error("stream_decode_error", error=str(e.__cause__ or e))
            await self._fail(e)
            return True

        if event is None:
            return False
        return await self._dispatch(event)

    def _decode_line(self, line: str) -> Optional[StreamEvent]:
        if not line.startswith(self._prefix):
            return None

        payload = line[len(self._prefix):]
        if not payload.strip():
            return None

        try:
            data = json.loads(payload)
        except ValueError as e:
            raise StreamDecodeError(PARSE_ERROR_MESSAGE) from e

        if not isinstance(data, dict):
            raise StreamDecodeError(PARSE_ERROR_MESSAGE)

        try:
            event_type = StreamEventType(data.get("type"))
        except ValueError:
            logger.warning("stream_unknown_event_type", type=data.get("type"))
            return None

        try:
            event = StreamEvent.model_validate({**data, "type": event_type})
        except ValidationError as e:
            raise StreamDecodeError(PARSE_ERROR_MESSAGE) from e

        metrics.record_stream_event(event_type.value)
        return event

    async def _dispatch(self, event: StreamEvent) -> bool:
        logger.debug("stream_event", type=event.type.value)

        if event.type == StreamEventType.STATUS:
            logger.info("stream_status", status=event.data or event.message)
            return False

        if event.type == StreamEventType.CHUNK:
            return False

        if event.type == StreamEventType.TITLE_CHUNK:
            return await self._update(self._artifact.append_title(_text(event.data)))

        if event.type == StreamEventType.TITLE_COMPLETE:
            return await self._update(self._artifact.with_title(_text(event.data)))

        if event.type == StreamEventType.DESCRIPTION_CHUNK:
            return await self._update(self._artifact.append_description(_text(event.data)))

        if event.type == StreamEventType.DESCRIPTION_COMPLETE:
            return await self._update(self._artifact.with_description(_text(event.data)))

        if event.type == StreamEventType.COMPLETE:
            try:
                final = self._final_artifact(event.data)
            except (StreamDecodeError, ValidationError) as e:
                logger.error("stream_complete_payload_invalid", error=str(e))
                await self._fail(StreamDecodeError(PARSE_ERROR_MESSAGE))
                return True
            await self._complete(final)
            return True

        # StreamEventType.ERROR
        message = _error_message(event)
        logger.error("stream_error_event", message=message)
        await self._fail(StreamEventError(message))
        return True

    def _final_artifact(self, data: Any) -> PreviewArtifact:
        """The complete event's payload is the result, not the accumulated chunks."""
        if isinstance(data, PreviewArtifact):
            return data
        if not isinstance(data, dict):
            raise StreamDecodeError("complete event carries no preview object")
        return PreviewArtifact.model_validate({"branchName": self._artifact.branch_name, **data})

    async def _update(self, artifact: PreviewArtifact) -> bool:
        self._artifact = artifact
        try:
            await invoke_callback(self._callbacks.on_update, artifact)
        except Exception as e:
            logger.error("stream_update_callback_failed", error=str(e))
            await self._fail(e)
            return True
        return False

    async def _complete(self, artifact: PreviewArtifact) -> None:
        self._artifact = artifact
        self._outcome = StreamOutcome.COMPLETED
        metrics.record_stream_outcome(self._outcome.value)
        logger.info("stream_completed", branch=artifact.branch_name)
        await invoke_callback(self._callbacks.on_complete, artifact)

    async def _fail(self, error: Exception) -> None:
        if self._outcome is not None:
            return
        self._outcome = StreamOutcome.FAILED
        metrics.record_stream_outcome(self._outcome.value)
        await invoke_callback(self._callbacks.on_error, error)

    def _cancel_outcome(self) -> StreamOutcome:
        self._cancelled = True
        self._outcome = StreamOutcome.CANCELLED
        metrics.record_stream_outcome(self._outcome.value)
        logger.info("stream_cancelled")
        return self._outcome


def _text(data: Any) -> str:
    return "" if data is None else str(data)


def _error_message(event: StreamEvent) -> str:
    if isinstance(event.data, str) and event.data:
        return event.data
    if isinstance(event.data, dict) and event.data.get("message"):
        return str(event.data["message"])
    return event.message or "Stream error"
