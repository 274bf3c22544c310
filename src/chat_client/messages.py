"""Messages API: streaming chat turns, image upload and connectivity checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from .api import ApiClient, UnauthorizedHook
from .auth import AuthTokenProvider
from .callbacks import SubmissionCallbacks
from .config import Settings
from .request_builder import ImageFile, RequestBuilder
from .streaming import StreamConsumer, StreamSubmission, build_http_client
from .uploads import UploadFallbackController

logger = logging.getLogger(__name__)


@dataclass
class ConnectionReport:
    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class MessagesApi:
    """Entry point wiring the builder, stream consumer and upload controller."""

    def __init__(
        self,
        settings: Settings,
        token_provider: AuthTokenProvider,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[UnauthorizedHook] = None,
    ):
        self._settings = settings
        self._builder = RequestBuilder(settings.base_url, token_provider)
        self._http = build_http_client(settings, transport=transport)
        self._api = ApiClient(
            settings,
            token_provider,
            transport=transport,
            on_unauthorized=on_unauthorized,
        )
        self._stream = StreamConsumer(self._builder, client=self._http)
        self._uploads = UploadFallbackController(self._api, self._builder, self._http)

    async def __aenter__(self) -> "MessagesApi":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def create_message_stream(
        self,
        session_id: Union[int, str],
        content: str,
        callbacks: SubmissionCallbacks,
        *,
        image_path: Optional[str] = None,
    ) -> None:
        """POST /api/sessions/{session_id}/messages and stream the reply."""

        await self._stream.submit(session_id, content, callbacks, image_path=image_path)

    async def create_message_with_image(
        self,
        session_id: Union[int, str],
        content: str,
        image: Optional[ImageFile],
        callbacks: SubmissionCallbacks,
    ) -> None:
        """POST /api/sessions/{session_id}/messages-with-image and stream the reply.

        Without an image the endpoint changes: the turn is sent as JSON to
        ``/api/sessions/{session_id}/messages``, the same as
        :meth:`create_message_stream`.
        """

        await self._stream.submit(session_id, content, callbacks, image=image)

    def start_message_stream(
        self,
        session_id: Union[int, str],
        content: str,
        callbacks: SubmissionCallbacks,
        *,
        image: Optional[ImageFile] = None,
        image_path: Optional[str] = None,
    ) -> StreamSubmission:
        return self._stream.start(
            session_id, content, callbacks, image=image, image_path=image_path
        )

    async def upload_image(self, session_id: Union[int, str], image: ImageFile) -> str:
        """POST /api/sessions/{session_id}/upload-image; returns the image path."""

        return await self._uploads.upload(session_id, image)

    async def check_connection(self) -> ConnectionReport:
        """Probe the backend; never raises."""

        base_url = self._settings.base_url
        logger.info("Checking connection to API: %s", base_url)
        try:
            response = await self._http.get(
                f"{base_url}/api/health-check",
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.error("Connection check error: %s", exc)
            return ConnectionReport(
                success=False,
                message=f"API connection error: {exc}",
                details={"apiUrl": base_url, "error": repr(exc)},
            )

        logger.debug("Health check status: %s", response.status_code)
        if response.is_success:
            try:
                data: Any = response.json()
            except ValueError:
                data = response.text
            return ConnectionReport(
                success=True,
                message="API connection successful",
                details={"apiUrl": base_url, "status": response.status_code, "data": data},
            )

        # Health-check endpoint may not exist; see whether the base URL answers
        try:
            fallback = await self._http.get(base_url)
        except httpx.HTTPError as exc:
            return ConnectionReport(
                success=False,
                message="API connection failed completely",
                details={
                    "apiUrl": base_url,
                    "originalStatus": response.status_code,
                    "fallbackError": repr(exc),
                },
            )
        return ConnectionReport(
            success=fallback.status_code < 500,
            message=(
                "API health check failed, but base URL is reachable. "
                f"Status: {fallback.status_code}"
            ),
            details={
                "apiUrl": base_url,
                "status": fallback.status_code,
                "originalStatus": response.status_code,
            },
        )

    async def aclose(self) -> None:
        await self._api.aclose()
        await self._http.aclose()


__all__ = ["ConnectionReport", "MessagesApi"]
