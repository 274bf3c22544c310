"""Streaming chat client for the essay-tutoring backend."""

from .auth import AuthTokenProvider, StaticTokenProvider, TokenStore
from .callbacks import CallbackSet, SubmissionCallbacks
from .config import Settings, get_settings
from .decoder import ChunkDecoder
from .errors import (
    ChatClientError,
    DecodeFault,
    MalformedResponse,
    RequestRejected,
    StreamUnavailable,
    TransportFault,
    UploadFailed,
)
from .messages import ConnectionReport, MessagesApi
from .request_builder import ImageFile, OutboundRequest, RequestBuilder
from .streaming import StreamConsumer, StreamSubmission, SubmissionState
from .uploads import UploadFallbackController

__all__ = [
    "AuthTokenProvider",
    "CallbackSet",
    "ChatClientError",
    "ChunkDecoder",
    "ConnectionReport",
    "DecodeFault",
    "ImageFile",
    "MalformedResponse",
    "MessagesApi",
    "OutboundRequest",
    "RequestBuilder",
    "RequestRejected",
    "Settings",
    "StaticTokenProvider",
    "StreamConsumer",
    "StreamSubmission",
    "StreamUnavailable",
    "SubmissionCallbacks",
    "SubmissionState",
    "TokenStore",
    "TransportFault",
    "UploadFailed",
    "UploadFallbackController",
    "get_settings",
]
