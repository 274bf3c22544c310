"""Error types surfaced by the streaming chat client."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ChatClientError(Exception):
    """Base class for request, stream and upload failures."""


class RequestRejected(ChatClientError):
    """The backend answered with a non-success status before streaming began."""

    def __init__(
        self,
        status_code: int,
        body: Optional[str] = None,
        reason: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.reason = reason
        self.detail = extract_error_detail(body)
        message = f"HTTP error! status: {status_code}"
        if reason:
            message += f", statusText: {reason}"
        if body:
            message += f", body: {body}"
        super().__init__(message)


class StreamUnavailable(ChatClientError):
    """The response was accepted but carries no readable body."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Response body is unavailable (status: {status_code})")


class TransportFault(ChatClientError):
    """Network-level failure while sending the request or reading the body."""


class DecodeFault(ChatClientError):
    """Bytes received from the stream could not be decoded as UTF-8."""

    def __init__(self, message: str, residue: bytes = b"") -> None:
        self.residue = residue
        super().__init__(message)


class MalformedResponse(ChatClientError):
    """A non-streaming response body did not have the expected shape."""


class UploadStrategy(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class UploadAttempt:
    strategy: UploadStrategy
    error: Optional[BaseException] = None


class UploadFailed(ChatClientError):
    """Both the primary and the fallback upload attempts failed."""

    def __init__(self, primary: BaseException, fallback: BaseException) -> None:
        self.primary = primary
        self.fallback = fallback
        self.attempts = (
            UploadAttempt(UploadStrategy.PRIMARY, primary),
            UploadAttempt(UploadStrategy.FALLBACK, fallback),
        )
        super().__init__(
            f"Image upload failed: {_describe(primary)}; "
            f"fallback upload also failed: {_describe(fallback)}"
        )


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def extract_error_detail(body: Optional[str]) -> Any:
    """Return the most useful part of an error body.

    FastAPI style backends answer with ``{"detail": ...}``; anything else is
    returned verbatim.
    """

    if not body:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(payload, dict):
        return payload.get("detail") or payload.get("error") or payload
    return payload


__all__ = [
    "ChatClientError",
    "DecodeFault",
    "MalformedResponse",
    "RequestRejected",
    "StreamUnavailable",
    "TransportFault",
    "UploadAttempt",
    "UploadFailed",
    "UploadStrategy",
    "extract_error_detail",
]
