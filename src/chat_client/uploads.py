"""Image upload with a single independent fallback attempt."""

from __future__ import annotations

import logging
from typing import Union

import httpx

from .api import ApiClient
from .errors import MalformedResponse, RequestRejected, UploadFailed
from .request_builder import ImageFile, RequestBuilder

logger = logging.getLogger(__name__)

SessionId = Union[int, str]


def extract_image_path(response: httpx.Response) -> str:
    """Return ``image_path`` from a successful upload response."""

    if not response.is_success:
        raise RequestRejected(response.status_code, response.text, response.reason_phrase)
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponse(f"Upload response is not JSON: {exc}") from exc
    path = payload.get("image_path") if isinstance(payload, dict) else None
    if not isinstance(path, str) or not path:
        raise MalformedResponse("Upload response is missing image_path")
    return path


class UploadFallbackController:
    """Upload through the shared pipeline, then once more without it.

    The primary attempt goes through :class:`ApiClient` and its hooks. If it
    fails for any reason a fresh request is built and sent on a plain
    transport carrying only the bearer token. There is never a second
    fallback.
    """

    def __init__(
        self,
        api: ApiClient,
        builder: RequestBuilder,
        fallback_client: httpx.AsyncClient,
    ):
        self._api = api
        self._builder = builder
        self._fallback_client = fallback_client

    async def upload(self, session_id: SessionId, image: ImageFile) -> str:
        logger.info("Uploading %r for session %s", image, session_id)

        try:
            return await self._upload_primary(session_id, image)
        except Exception as exc:  # any failure of the primary pipeline moves to the fallback
            primary_error = exc
        logger.warning("Primary upload failed (%s); trying fallback upload", primary_error)

        try:
            path = await self._upload_fallback(session_id, image)
        except Exception as exc:
            logger.error("Fallback upload also failed: %s", exc)
            raise UploadFailed(primary_error, exc) from exc
        logger.info("Fallback upload succeeded: %s", path)
        return path

    async def _upload_primary(self, session_id: SessionId, image: ImageFile) -> str:
        response = await self._api.post(
            f"/api/sessions/{session_id}/upload-image",
            files={"file": image.as_file_tuple()},
        )
        return extract_image_path(response)

    async def _upload_fallback(self, session_id: SessionId, image: ImageFile) -> str:
        request = self._builder.build_upload(session_id, image)
        response = await self._fallback_client.send(
            request.to_httpx(self._fallback_client)
        )
        return extract_image_path(response)


__all__ = ["UploadFallbackController", "extract_image_path"]
