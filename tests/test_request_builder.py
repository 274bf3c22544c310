"""Tests for outbound request construction."""

import dataclasses
import json

import httpx
import pytest

from chat_client.auth import StaticTokenProvider
from chat_client.request_builder import (
    ImageFile,
    JsonBody,
    MultipartBody,
    RequestBuilder,
    SubmissionMode,
)

BASE = "https://chat.example.com"
IMAGE = ImageFile("page.png", b"\x89PNG fake", "image/png")


def make_builder(token=None) -> RequestBuilder:
    return RequestBuilder(BASE + "/", StaticTokenProvider(token))


def test_json_stream_request_headers_and_body() -> None:
    request = make_builder("tok").build(7, "hello")

    assert request.mode is SubmissionMode.STREAM_JSON
    assert request.method == "POST"
    assert request.url == f"{BASE}/api/sessions/7/messages"
    assert dict(request.headers) == {
        "Content-Type": "application/json",
        "Accept": "text/event-stream",
        "Authorization": "Bearer tok",
    }
    assert request.body == JsonBody({"content": "hello"})


def test_json_stream_request_includes_image_path_when_given() -> None:
    request = make_builder().build(7, "look", image_path="uploads/a.png")

    assert isinstance(request.body, JsonBody)
    assert request.body.payload == {"content": "look", "image_path": "uploads/a.png"}


def test_missing_token_omits_authorization() -> None:
    for token in (None, ""):
        request = make_builder(token).build(1, "hi")
        assert "Authorization" not in request.headers


def test_multipart_stream_request_leaves_content_type_to_transport() -> None:
    request = make_builder("tok").build(3, "describe", IMAGE)

    assert request.mode is SubmissionMode.STREAM_MULTIPART
    assert request.url == f"{BASE}/api/sessions/3/messages-with-image"
    assert dict(request.headers) == {
        "Accept": "text/event-stream",
        "Authorization": "Bearer tok",
    }
    assert isinstance(request.body, MultipartBody)
    assert request.body.fields == {"content": "describe"}
    assert request.body.files == {"image": IMAGE}


def test_non_streaming_build_accepts_json() -> None:
    request = make_builder().build(3, "hi", wants_stream=False)

    assert request.headers["Accept"] == "application/json"


def test_empty_content_passes_through() -> None:
    request = make_builder().build(3, "")

    assert isinstance(request.body, JsonBody)
    assert request.body.payload == {"content": ""}


def test_upload_request_is_minimal() -> None:
    request = make_builder("tok").build_upload(9, IMAGE)

    assert request.mode is SubmissionMode.UPLOAD
    assert request.url == f"{BASE}/api/sessions/9/upload-image"
    assert dict(request.headers) == {"Authorization": "Bearer tok"}
    assert request.body == MultipartBody(files={"file": IMAGE})


def test_outbound_request_is_immutable() -> None:
    request = make_builder("tok").build(1, "hi")

    with pytest.raises(dataclasses.FrozenInstanceError):
        request.url = "https://elsewhere"  # type: ignore[misc]
    with pytest.raises(TypeError):
        request.headers["Authorization"] = "Bearer other"  # type: ignore[index]
    with pytest.raises(TypeError):
        request.body.payload["content"] = "tampered"  # type: ignore[union-attr,index]
    assert request.body.payload["content"] == "hi"  # type: ignore[union-attr]


def test_multipart_body_is_immutable() -> None:
    image = ImageFile("a.png", b"png", "image/png")
    request = make_builder("tok").build(1, "caption", image)

    with pytest.raises(TypeError):
        request.body.fields["content"] = "tampered"  # type: ignore[union-attr,index]
    with pytest.raises(TypeError):
        request.body.files["other"] = image  # type: ignore[union-attr,index]
    assert request.body.fields == {"content": "caption"}  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_to_httpx_encodes_json_body() -> None:
    async with httpx.AsyncClient() as client:
        http_request = make_builder("tok").build(1, "hello").to_httpx(client)

    assert http_request.method == "POST"
    assert str(http_request.url) == f"{BASE}/api/sessions/1/messages"
    assert http_request.headers["content-type"] == "application/json"
    assert http_request.headers["authorization"] == "Bearer tok"
    assert json.loads(http_request.read()) == {"content": "hello"}


@pytest.mark.asyncio
async def test_to_httpx_multipart_sets_boundary() -> None:
    async with httpx.AsyncClient() as client:
        http_request = make_builder().build(1, "describe", IMAGE).to_httpx(client)

    content_type = http_request.headers["content-type"]
    assert content_type.startswith("multipart/form-data; boundary=")
    body = http_request.read()
    assert b'name="content"' in body
    assert b"describe" in body
    assert b'name="image"; filename="page.png"' in body
    assert b"\x89PNG fake" in body


def test_image_file_from_path(tmp_path) -> None:
    path = tmp_path / "scan.jpg"
    path.write_bytes(b"jpeg bytes")

    image = ImageFile.from_path(path)

    assert image.filename == "scan.jpg"
    assert image.content == b"jpeg bytes"
    assert image.content_type == "image/jpeg"
