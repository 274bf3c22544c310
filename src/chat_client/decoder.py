"""Incremental UTF-8 decoding of streamed response bodies."""

from __future__ import annotations

import codecs

from .errors import DecodeFault


class ChunkDecoder:
    """Turn raw byte chunks into text fragments for a single stream.

    Bytes of a character split across a chunk boundary are held back until
    the following chunk completes it. Calling :meth:`finish` with an
    incomplete character still buffered raises :class:`DecodeFault`.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
        self._finished = False

    @property
    def residue(self) -> bytes:
        """Bytes retained from the last chunk boundary (0-3 for UTF-8)."""

        buffered, _ = self._decoder.getstate()
        return buffered

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, data: bytes) -> str:
        if self._finished:
            raise RuntimeError("ChunkDecoder is single-use and already finished")
        try:
            return self._decoder.decode(data)
        except UnicodeDecodeError as exc:
            self._finished = True
            raise DecodeFault(
                f"Invalid UTF-8 sequence in stream: {exc.reason}",
                residue=exc.object[exc.start : exc.end],
            ) from exc

    def finish(self) -> str:
        if self._finished:
            raise RuntimeError("ChunkDecoder is single-use and already finished")
        residue = self.residue
        self._finished = True
        try:
            return self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            raise DecodeFault(
                f"Stream ended with {len(residue)} undecodable byte(s): {residue!r}",
                residue=residue,
            ) from exc


__all__ = ["ChunkDecoder"]
