"""Shared HTTP pipeline for non-streaming calls to the chat backend."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

import httpx

from .auth import AuthTokenProvider
from .config import Settings

logger = logging.getLogger(__name__)

UnauthorizedHook = Callable[[httpx.Response], Any]


class ApiClient:
    """httpx client with the request/response hooks every call goes through.

    The request hook attaches the bearer token and logs the call; the
    response hook logs the outcome and, on 401, notifies ``on_unauthorized``
    when the surrounding application supplied one. The client never touches
    stored credentials itself.
    """

    def __init__(
        self,
        settings: Settings,
        token_provider: AuthTokenProvider,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[UnauthorizedHook] = None,
    ):
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        timeout = httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            event_hooks={
                "request": [self._attach_auth, self._log_request],
                "response": [self._log_response],
            },
            transport=transport,
        )
        logger.debug(
            "[API Client] Configuration: baseURL=%s timeout=%s",
            settings.base_url,
            settings.request_timeout,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url).rstrip("/")

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _attach_auth(self, request: httpx.Request) -> None:
        token = self._token_provider.get_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug("[API Client] Making %s request to: %s", request.method, request.url)

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        if response.is_success:
            logger.debug(
                "[API Client] Received response from %s: %s",
                request.url,
                response.status_code,
            )
            return

        logger.error(
            "[API Client] Error response from %s %s: %s %s",
            request.method,
            request.url,
            response.status_code,
            response.reason_phrase,
        )
        if response.status_code == 401 and self._on_unauthorized is not None:
            result = self._on_unauthorized(response)
            if inspect.isawaitable(result):
                await result


__all__ = ["ApiClient", "UnauthorizedHook"]
