"""Construction of outbound chat requests."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import httpx

from .auth import AuthTokenProvider


class SubmissionMode(str, Enum):
    STREAM_JSON = "stream-json"
    STREAM_MULTIPART = "stream-multipart"
    UPLOAD = "upload"


@dataclass(frozen=True)
class ImageFile:
    """Image bytes plus the metadata needed for a multipart part."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageFile":
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)

    def as_file_tuple(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)

    def __repr__(self) -> str:
        return (
            f"ImageFile(filename={self.filename!r}, size={len(self.content)}, "
            f"content_type={self.content_type!r})"
        )


@dataclass(frozen=True)
class JsonBody:
    payload: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


@dataclass(frozen=True)
class MultipartBody:
    fields: Mapping[str, str] = field(default_factory=dict)
    files: Mapping[str, ImageFile] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))


Body = Union[JsonBody, MultipartBody]


@dataclass(frozen=True)
class OutboundRequest:
    """A fully described POST request; immutable once built."""

    url: str
    headers: Mapping[str, str]
    body: Body
    mode: SubmissionMode
    method: str = "POST"

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_httpx(self, client: httpx.AsyncClient) -> httpx.Request:
        """Return an ``httpx.Request`` for ``client``.

        Multipart bodies are handed to httpx as ``data``/``files`` so the
        Content-Type header carries the generated boundary.
        """

        headers = dict(self.headers)
        if isinstance(self.body, JsonBody):
            return client.build_request(
                self.method, self.url, headers=headers, json=dict(self.body.payload)
            )
        files = {name: image.as_file_tuple() for name, image in self.body.files.items()}
        return client.build_request(
            self.method,
            self.url,
            headers=headers,
            data=dict(self.body.fields),
            files=files or None,
        )


class RequestBuilder:
    """Build requests against the chat backend's session endpoints."""

    def __init__(self, base_url: str, token_provider: AuthTokenProvider):
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider

    @property
    def base_url(self) -> str:
        return self._base_url

    def session_url(self, session_id: Union[int, str], endpoint: str) -> str:
        return f"{self._base_url}/api/sessions/{session_id}/{endpoint}"

    def auth_headers(self) -> dict[str, str]:
        token = self._token_provider.get_token()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def build(
        self,
        session_id: Union[int, str],
        content: str,
        image: Optional[ImageFile] = None,
        wants_stream: bool = True,
        *,
        image_path: Optional[str] = None,
    ) -> OutboundRequest:
        accept = "text/event-stream" if wants_stream else "application/json"

        if image is None:
            payload: dict[str, Any] = {"content": content}
            if image_path is not None:
                payload["image_path"] = image_path
            headers = {"Content-Type": "application/json", "Accept": accept}
            headers.update(self.auth_headers())
            return OutboundRequest(
                url=self.session_url(session_id, "messages"),
                headers=headers,
                body=JsonBody(payload),
                mode=SubmissionMode.STREAM_JSON,
            )

        headers = {"Accept": accept}
        headers.update(self.auth_headers())
        return OutboundRequest(
            url=self.session_url(session_id, "messages-with-image"),
            headers=headers,
            body=MultipartBody(fields={"content": content}, files={"image": image}),
            mode=SubmissionMode.STREAM_MULTIPART,
        )

    def build_upload(
        self, session_id: Union[int, str], image: ImageFile
    ) -> OutboundRequest:
        """Minimal upload request: bearer token only, fresh multipart body."""

        return OutboundRequest(
            url=self.session_url(session_id, "upload-image"),
            headers=self.auth_headers(),
            body=MultipartBody(files={"file": image}),
            mode=SubmissionMode.UPLOAD,
        )


__all__ = [
    "Body",
    "ImageFile",
    "JsonBody",
    "MultipartBody",
    "OutboundRequest",
    "RequestBuilder",
    "SubmissionMode",
]
