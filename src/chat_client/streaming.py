"""Streaming submission of chat turns."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

import httpx

from .callbacks import CallbackDispatcher, SubmissionCallbacks
from .config import Settings
from .decoder import ChunkDecoder
from .errors import RequestRejected, StreamUnavailable, TransportFault
from .request_builder import ImageFile, OutboundRequest, RequestBuilder

logger = logging.getLogger(__name__)

# Statuses that by definition carry no response body.
_NO_BODY_STATUSES = frozenset({204, 205})


class _StreamCancelled(Exception):
    """Raised inside the read loop once cancellation was requested."""


class SubmissionState(str, Enum):
    IDLE = "idle"
    REQUEST_SENT = "request_sent"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {
            SubmissionState.COMPLETED,
            SubmissionState.FAILED,
            SubmissionState.CANCELLED,
        }


def build_http_client(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Plain client without hooks; the timeout ceiling lives here."""

    timeout = httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)
    limits = httpx.Limits(max_connections=50, max_keepalive_connections=20)
    return httpx.AsyncClient(timeout=timeout, limits=limits, transport=transport)


class StreamSubmission:
    """One streaming submission and its state machine.

    A submission runs at most once. Exactly one of ``on_complete`` or
    ``on_error`` fires unless the submission is cancelled, in which case no
    terminal callback fires at all.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        request: OutboundRequest,
        callbacks: SubmissionCallbacks,
    ):
        self._client = client
        self.request = request
        self.state = SubmissionState.IDLE
        self._dispatcher = CallbackDispatcher(callbacks)
        self._cancel_requested = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> None:
        """Stop the read loop; no callback fires after this call."""

        if self.state.is_terminal:
            return
        self._cancel_requested = True
        self._dispatcher.silence()
        if self.state is SubmissionState.IDLE:
            self.state = SubmissionState.CANCELLED
        if self._task is None or self._task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # From inside the read loop the flag check ends the stream
        if self._task is not current:
            self._task.cancel()

    def schedule(self) -> "StreamSubmission":
        if self._task is not None or self.state is not SubmissionState.IDLE:
            raise RuntimeError("Submission has already been started")
        self._task = asyncio.create_task(self.run())
        return self

    async def wait(self) -> None:
        """Wait for a scheduled submission to reach a terminal state."""

        if self._task is None:
            raise RuntimeError("Submission was not scheduled")
        await asyncio.wait({self._task})
        if self._task.cancelled():
            return
        self._task.result()

    async def run(self) -> None:
        if self.state is SubmissionState.CANCELLED and self._cancel_requested:
            return
        if self.state is not SubmissionState.IDLE:
            raise RuntimeError("Submission has already been started")
        try:
            await self._pump()
        except _StreamCancelled:
            self.state = SubmissionState.CANCELLED
            logger.info("Stream to %s cancelled", self.request.url)
            return
        except asyncio.CancelledError:
            self.state = SubmissionState.CANCELLED
            self._dispatcher.silence()
            logger.info("Stream to %s cancelled", self.request.url)
            raise
        except Exception as exc:
            self.state = SubmissionState.FAILED
            logger.error("Stream to %s failed: %s", self.request.url, exc)
            await self._dispatcher.error(exc)
            return

        self.state = SubmissionState.COMPLETED
        logger.debug("Stream to %s completed", self.request.url)
        await self._dispatcher.complete()

    async def _pump(self) -> None:
        http_request = self.request.to_httpx(self._client)
        self.state = SubmissionState.REQUEST_SENT
        logger.debug("Making request to: %s", self.request.url)
        try:
            response = await self._client.send(http_request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportFault(f"Request to {self.request.url} failed: {exc}") from exc

        try:
            logger.debug("Response status: %s", response.status_code)
            await self._ensure_streamable(response)
            self.state = SubmissionState.STREAMING
            await self._read_body(response)
        finally:
            await response.aclose()

    async def _ensure_streamable(self, response: httpx.Response) -> None:
        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = "Failed to get response text"
            logger.error("Error response body: %s", body)
            raise RequestRejected(response.status_code, body, response.reason_phrase)
        if response.status_code in _NO_BODY_STATUSES:
            raise StreamUnavailable(response.status_code)

    async def _read_body(self, response: httpx.Response) -> None:
        decoder = ChunkDecoder()
        try:
            async for block in response.aiter_bytes():
                if self._cancel_requested:
                    raise _StreamCancelled()
                fragment = decoder.feed(block)
                if fragment:
                    logger.debug("Received chunk: %r", fragment)
                    await self._dispatcher.chunk(fragment)
                if self._cancel_requested:
                    raise _StreamCancelled()
        except httpx.HTTPError as exc:
            raise TransportFault(f"Stream from {self.request.url} broke: {exc}") from exc

        trailing = decoder.finish()
        if trailing:
            await self._dispatcher.chunk(trailing)


class StreamConsumer:
    """Submit chat turns and deliver the streamed reply through callbacks."""

    def __init__(
        self,
        builder: RequestBuilder,
        *,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        if client is None and settings is None:
            raise ValueError("Either an httpx client or settings must be provided")
        self._builder = builder
        self._client = client
        self._settings = settings
        self._owns_client = client is None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        if self._settings is None:
            raise RuntimeError("StreamConsumer has no client and no settings")
        self._client = build_http_client(self._settings)
        return self._client

    def prepare(
        self,
        session_id: Union[int, str],
        content: str,
        callbacks: SubmissionCallbacks,
        *,
        image: Optional[ImageFile] = None,
        image_path: Optional[str] = None,
    ) -> StreamSubmission:
        request = self._builder.build(
            session_id, content, image, True, image_path=image_path
        )
        return StreamSubmission(self._get_http_client(), request, callbacks)

    async def submit(
        self,
        session_id: Union[int, str],
        content: str,
        callbacks: SubmissionCallbacks,
        *,
        image: Optional[ImageFile] = None,
        image_path: Optional[str] = None,
    ) -> None:
        """Run one submission in the current task.

        All results arrive through ``callbacks``; cancelling the calling task
        stops the stream without firing any further callback.
        """

        submission = self.prepare(
            session_id, content, callbacks, image=image, image_path=image_path
        )
        await submission.run()

    def start(
        self,
        session_id: Union[int, str],
        content: str,
        callbacks: SubmissionCallbacks,
        *,
        image: Optional[ImageFile] = None,
        image_path: Optional[str] = None,
    ) -> StreamSubmission:
        """Run one submission in its own task and return a cancellable handle."""

        submission = self.prepare(
            session_id, content, callbacks, image=image, image_path=image_path
        )
        return submission.schedule()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = [
    "StreamConsumer",
    "StreamSubmission",
    "SubmissionState",
    "build_http_client",
]
