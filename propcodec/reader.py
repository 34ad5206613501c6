"""
Properties Reader - Incremental parser for .properties streams.

Streaming features:
  - Bytes are pulled in fixed-size chunks and decoded incrementally, so
    multi-byte characters may straddle chunk boundaries
  - Lines and continuations of any length may span any number of chunks
  - Only the current logical line is buffered, never the whole input

Parsing (per physical line):
  - Leading spaces, tabs and form feeds are skipped, blank lines ignored
  - '#' or '!' as first character marks a comment, ignored to end of line
  - An odd run of trailing backslashes joins the next line (minus its
    leading whitespace); an even run is an escaped backslash
  - Key ends at the first unescaped '=', ':' or whitespace
"""

from __future__ import annotations

import builtins
import codecs
import io
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol

from propcodec.document import LogicalLine
from propcodec.spec import (
    COMMENT_CHARS, DEFAULT_CHUNK_SIZE, DEFAULT_ENCODING, KEY_TERMINATORS,
    LINE_TERMINATORS, MAX_FILE_SIZE, WHITESPACE, unescape,
)
from propcodec.stream import (
    ais_interactive, aiter_chunks, is_interactive, iter_chunks, lookup_encoding,
)

if TYPE_CHECKING:
    from propcodec.document import PropertiesStore

logger = logging.getLogger(__name__)


class PropertySink(Protocol):
    def set(self, key: str, value: str) -> Any: ...


def split_property(text: str) -> tuple[str, str]:
    """Split a logical line into its still-escaped key and value."""
    limit = len(text)
    key_length = 0
    value_start = limit
    has_separator = False
    preceding_backslash = False

    while key_length < limit:
        c = text[key_length]
        if not preceding_backslash:
            if c in KEY_TERMINATORS:
                has_separator = True
                value_start = key_length + 1
                break
            if c in WHITESPACE:
                value_start = key_length + 1
                break
        preceding_backslash = c == "\\" and not preceding_backslash
        key_length += 1

    # Skip whitespace after the key, absorbing one '=' or ':' if the key
    # was terminated by whitespace ("key = value")
    while value_start < limit:
        c = text[value_start]
        if c not in WHITESPACE:
            if not has_separator and c in KEY_TERMINATORS:
                has_separator = True
            else:
                break
        value_start += 1

    return text[:key_length], text[value_start:]


class PropertiesParser:
    """
    Sans-I/O state machine turning decoded text into (key, value) pairs.

    Usage:
        parser = PropertiesParser()
        for chunk in text_chunks:
            pairs.extend(parser.feed(chunk))
        pairs.extend(parser.close())
    """

    def __init__(self) -> None:
        self._buffer: list[str] = []
        self._line_number = 1       # physical line currently being scanned
        self._start_line = 1        # where the pending logical line began
        self._line_count = 1
        self._skip_whitespace = True
        self._new_line = True
        self._comment = False
        self._preceding_backslash = False
        self._appended_line_begin = False
        self._skip_line_feed = False
        self._closed = False

    @staticmethod
    def to_pair(line: LogicalLine) -> tuple[str, str]:
        raw_key, raw_value = split_property(line.text)
        return unescape(raw_key), unescape(raw_value)

    def feed(self, text: str) -> list[tuple[str, str]]:
        """Consume ``text`` and return the pairs of every completed line."""
        if self._closed:
            raise RuntimeError("Cannot feed a closed PropertiesParser")
        return [self.to_pair(line) for line in self._scan(text)]

    def close(self) -> list[tuple[str, str]]:
        """Signal end of input and return the pair of the final line, if any."""
        if self._closed:
            return []
        self._closed = True
        if not self._buffer or self._comment:
            return []
        if self._preceding_backslash:
            # continuation marker at end of input
            self._buffer.pop()
        return [self.to_pair(self._take_line())]

    def _take_line(self) -> LogicalLine:
        line = LogicalLine(
            text="".join(self._buffer),
            start_line=self._start_line,
            line_count=self._line_count,
        )
        self._buffer = []
        self._preceding_backslash = False
        self._reset_line()
        return line

    def _reset_line(self) -> None:
        self._comment = False
        self._new_line = True
        self._skip_whitespace = True
        self._appended_line_begin = False
        self._line_count = 1

    def _scan(self, text: str) -> Iterator[LogicalLine]:
        buffer = self._buffer
        for c in text:
            if self._skip_line_feed:
                self._skip_line_feed = False
                if c == "\n":
                    continue

            if self._skip_whitespace:
                if c in WHITESPACE:
                    continue
                if not self._appended_line_begin and c in LINE_TERMINATORS:
                    # blank line
                    self._count_terminator(c)
                    continue
                self._appended_line_begin = False
                self._skip_whitespace = False
                if self._new_line:
                    self._start_line = self._line_number

            if self._new_line:
                self._new_line = False
                if c in COMMENT_CHARS:
                    self._comment = True

            if c not in LINE_TERMINATORS:
                if self._comment:
                    continue
                buffer.append(c)
                self._preceding_backslash = c == "\\" and not self._preceding_backslash
                continue

            self._count_terminator(c)

            if self._comment or not buffer:
                self._buffer = buffer = []
                self._preceding_backslash = False
                self._reset_line()
                continue

            if self._preceding_backslash:
                buffer.pop()
                self._preceding_backslash = False
                self._appended_line_begin = True
                self._skip_whitespace = True
                self._line_count += 1
                continue

            yield self._take_line()
            buffer = self._buffer

    def _count_terminator(self, c: str) -> None:
        self._line_number += 1
        if c == "\r":
            self._skip_line_feed = True


def _setter(sink: Any) -> Callable[[str, str], Any]:
    setter = getattr(sink, "set", None)
    if callable(setter):
        return setter
    if hasattr(sink, "__setitem__"):
        return sink.__setitem__
    raise TypeError(f"Sink must provide set(key, value), got {type(sink).__name__}")


class PropertiesReader:
    """
    Reads .properties data from a byte stream into a sink.

    Usage:
        # Into any sink with set(key, value) or a plain dict
        with open("app.properties", "rb") as f:
            PropertiesReader(f).read(store)

        # Async source (asyncio.StreamReader, aiofiles handle, ...)
        await PropertiesReader(stream, encoding="utf-8").aread(store)

        # Whole file into a new PropertiesStore
        store = PropertiesReader.load("app.properties")
    """

    def __init__(
        self,
        stream: Any,
        encoding: str = DEFAULT_ENCODING,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._codec = lookup_encoding(encoding)
        self.encoding = encoding
        self.chunk_size = chunk_size
        self._stream = stream

    def _decoder(self) -> codecs.IncrementalDecoder:
        return self._codec.incrementaldecoder("strict")

    def __iter__(self) -> Iterator[tuple[str, str]]:
        if is_interactive(self._stream):
            logger.debug("Input is interactive, reading no properties")
            return
        decoder = self._decoder()
        parser = PropertiesParser()
        for chunk in iter_chunks(self._stream, self.chunk_size):
            yield from parser.feed(decoder.decode(chunk))
        yield from parser.feed(decoder.decode(b"", final=True))
        yield from parser.close()

    def read(self, sink: PropertySink | dict[str, str]) -> int:
        """Read every property into ``sink``. Returns the number of pairs set.

        Later occurrences of a key call ``sink.set`` again (last wins).
        """
        setter = _setter(sink)
        count = 0
        for key, value in self:
            setter(key, value)
            count += 1
        logger.debug("Read %d properties (%s)", count, self.encoding)
        return count

    async def aread(self, sink: PropertySink | dict[str, str]) -> int:
        """Async version of read(); the stream's read() may return awaitables."""
        setter = _setter(sink)
        if await ais_interactive(self._stream):
            logger.debug("Input is interactive, reading no properties")
            return 0
        decoder = self._decoder()
        parser = PropertiesParser()
        count = 0
        async for chunk in aiter_chunks(self._stream, self.chunk_size):
            for key, value in parser.feed(decoder.decode(chunk)):
                setter(key, value)
                count += 1
        for key, value in parser.feed(decoder.decode(b"", final=True)) + parser.close():
            setter(key, value)
            count += 1
        logger.debug("Read %d properties (%s)", count, self.encoding)
        return count

    @classmethod
    def parse(cls, data: bytes, encoding: str = DEFAULT_ENCODING) -> PropertiesStore:
        """Parse bytes into a new PropertiesStore."""
        from propcodec.document import PropertiesStore

        store = PropertiesStore()
        cls(io.BytesIO(data), encoding=encoding).read(store)
        return store

    @classmethod
    def load(
        cls,
        path: str | Path,
        encoding: str = DEFAULT_ENCODING,
        max_size: int = MAX_FILE_SIZE,
    ) -> PropertiesStore:
        """Read a .properties file into a new PropertiesStore."""
        from propcodec.document import PropertiesStore

        path = Path(path)
        _check_size(path, max_size)
        store = PropertiesStore()
        with builtins.open(path, "rb") as f:
            cls(f, encoding=encoding).read(store)
        return store

    @classmethod
    async def aload(
        cls,
        path: str | Path,
        encoding: str = DEFAULT_ENCODING,
        max_size: int = MAX_FILE_SIZE,
    ) -> PropertiesStore:
        """Async version of load(), reading the file through aiofiles."""
        import aiofiles
        from propcodec.document import PropertiesStore

        path = Path(path)
        _check_size(path, max_size)
        store = PropertiesStore()
        async with aiofiles.open(path, "rb") as f:
            await cls(f, encoding=encoding).aread(store)
        return store


def _check_size(path: Path, max_size: int) -> None:
    file_size = path.stat().st_size
    if file_size > max_size:
        raise ValueError(
            f"File size {file_size} exceeds maximum {max_size} bytes. "
            f"Pass max_size= to override."
        )
