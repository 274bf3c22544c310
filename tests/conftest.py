import asyncio
import pathlib
import sys
from typing import Any, AsyncIterator, Optional

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from chat_client.config import Settings  # noqa: E402

BASE_URL = "https://chat.example.com"


class RecordingCallbacks:
    """Callback sink that records every invocation in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def on_chunk(self, text: str) -> None:
        self.events.append(("chunk", text))

    def on_complete(self) -> None:
        self.events.append(("complete", None))

    def on_error(self, error: BaseException) -> None:
        self.events.append(("error", error))

    @property
    def chunks(self) -> list[str]:
        return [value for kind, value in self.events if kind == "chunk"]

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    @property
    def terminal(self) -> list[tuple[str, Any]]:
        return [event for event in self.events if event[0] != "chunk"]

    @property
    def error(self) -> Optional[BaseException]:
        errors = [value for kind, value in self.events if kind == "error"]
        return errors[0] if errors else None


async def stream_blocks(
    *blocks: bytes,
    error: Optional[BaseException] = None,
    gate: Optional[asyncio.Event] = None,
) -> AsyncIterator[bytes]:
    """Yield ``blocks`` one by one, optionally pausing or failing."""

    for index, block in enumerate(blocks):
        if gate is not None and index > 0:
            await gate.wait()
        yield block
    if error is not None:
        raise error


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BASE_URL, _env_file=None)


@pytest.fixture
def recorder() -> RecordingCallbacks:
    return RecordingCallbacks()
