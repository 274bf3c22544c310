"""Callback contract between a streaming submission and its UI sink."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class SubmissionCallbacks(Protocol):
    def on_chunk(self, text: str) -> Any:
        ...

    def on_complete(self) -> Any:
        ...

    def on_error(self, error: BaseException) -> Any:
        ...


def _ignore(*_args: Any) -> None:
    return None


@dataclass(frozen=True)
class CallbackSet:
    """Build a :class:`SubmissionCallbacks` from plain functions.

    Any callback may also be a coroutine function; its result is awaited
    before the stream reads further.
    """

    on_chunk: Callable[[str], Any] = _ignore
    on_complete: Callable[[], Any] = _ignore
    on_error: Callable[[BaseException], Any] = _ignore


class CallbackDispatcher:
    """Enforce the once-only terminal callback for a single submission."""

    def __init__(self, callbacks: SubmissionCallbacks):
        self._callbacks = callbacks
        self._terminated = False
        self._silenced = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def silenced(self) -> bool:
        return self._silenced

    def silence(self) -> None:
        """Drop every callback from now on (used on cancellation)."""
        self._silenced = True

    async def chunk(self, text: str) -> None:
        if self._terminated or self._silenced:
            return
        await _maybe_await(self._callbacks.on_chunk(text))

    async def complete(self) -> None:
        if not self._claim_terminal():
            return
        await _maybe_await(self._callbacks.on_complete())

    async def error(self, error: BaseException) -> None:
        if not self._claim_terminal():
            logger.debug("Dropping error after terminal callback: %r", error)
            return
        await _maybe_await(self._callbacks.on_error(error))

    def _claim_terminal(self) -> bool:
        if self._terminated or self._silenced:
            return False
        self._terminated = True
        return True


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


__all__ = ["CallbackDispatcher", "CallbackSet", "SubmissionCallbacks"]
