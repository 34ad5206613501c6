"""
Stream adapters - Glue between the codec and byte streams.

The reader pulls fixed-size chunks and the writer pushes encoded lines. Both
sides accept either:
  - a synchronous binary file object (``read(n)`` / ``write(b)`` / ``flush()``)
  - an asynchronous one: ``asyncio.StreamReader`` / ``asyncio.StreamWriter``,
    an ``aiofiles`` handle, or anything whose methods return awaitables

Backpressure:
  - The next chunk is requested only after the previous one was parsed
  - Each async write is awaited, then ``drain()`` when the stream has one

Failures of the stream itself (``OSError``, or ``ValueError`` from a closed
file) surface as ``StreamError``.
"""

from __future__ import annotations

import codecs
import inspect
import logging
from collections.abc import AsyncIterator, Iterator
from typing import Any

from propcodec.errors import EncodingError, StreamError
from propcodec.spec import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


def lookup_encoding(encoding: str) -> codecs.CodecInfo:
    """Resolve an encoding name, raising EncodingError if it is unknown."""
    try:
        info = codecs.lookup(encoding)
    except (LookupError, TypeError) as exc:
        raise EncodingError(encoding) from exc
    if not getattr(info, "_is_text_encoding", True):
        # bytes-to-bytes codecs such as "hex" or "zlib"
        raise EncodingError(encoding)
    return info


def is_interactive(stream: Any) -> bool:
    """True if the stream is a terminal, which is never waited on for input."""
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        result = isatty()
    except (OSError, ValueError):
        return False
    if inspect.isawaitable(result):
        # async handles answer through ais_interactive()
        if inspect.iscoroutine(result):
            result.close()
        return False
    return bool(result)


async def ais_interactive(stream: Any) -> bool:
    """Async version of is_interactive, for handles whose isatty() is async."""
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        result = isatty()
        if inspect.isawaitable(result):
            result = await result
    except (OSError, ValueError):
        return False
    return bool(result)


def _check_chunk(chunk: Any) -> bytes:
    if chunk is None:
        return b""
    if not isinstance(chunk, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"Expected a binary stream, read() returned {type(chunk).__name__}"
        )
    return bytes(chunk)


def iter_chunks(stream: Any, size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks of at most ``size`` bytes until the stream is exhausted."""
    while True:
        try:
            chunk = _check_chunk(stream.read(size))
        except (OSError, ValueError) as exc:
            logger.error("Failed to read from stream: %s", exc)
            raise StreamError(f"Failed to read from stream: {exc}") from exc
        if not chunk:
            return
        yield chunk


async def aiter_chunks(stream: Any, size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Async version of iter_chunks. ``stream.read`` may be sync or async."""
    while True:
        try:
            result = stream.read(size)
            if inspect.isawaitable(result):
                result = await result
            chunk = _check_chunk(result)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read from stream: %s", exc)
            raise StreamError(f"Failed to read from stream: {exc}") from exc
        if not chunk:
            return
        yield chunk


def write_bytes(stream: Any, data: bytes) -> None:
    try:
        stream.write(data)
    except (OSError, ValueError) as exc:
        logger.error("Failed to write to stream: %s", exc)
        raise StreamError(f"Failed to write to stream: {exc}") from exc


def flush_stream(stream: Any) -> None:
    flush = getattr(stream, "flush", None)
    if not callable(flush):
        return
    try:
        flush()
    except (OSError, ValueError) as exc:
        raise StreamError(f"Failed to flush stream: {exc}") from exc


async def awrite_bytes(stream: Any, data: bytes) -> None:
    """Write ``data`` and wait until the stream accepts more."""
    try:
        result = stream.write(data)
        if inspect.isawaitable(result):
            await result
        drain = getattr(stream, "drain", None)
        if callable(drain):
            await drain()
    except (OSError, ValueError) as exc:
        logger.error("Failed to write to stream: %s", exc)
        raise StreamError(f"Failed to write to stream: {exc}") from exc


async def aflush_stream(stream: Any) -> None:
    flush = getattr(stream, "flush", None)
    if not callable(flush):
        return
    try:
        result = flush()
        if inspect.isawaitable(result):
            await result
    except (OSError, ValueError) as exc:
        raise StreamError(f"Failed to flush stream: {exc}") from exc
