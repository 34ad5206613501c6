"""
Properties Writer - Serializes key/value pairs to .properties format.

Output order:
  1. Comment block (if any), one "# ..." line per comment line
  2. Timestamp comment (if enabled)
  3. One "key=value" line per pair, in the source's own order

Each line is escaped, terminated, encoded and written before the next one is
composed. Nothing at all is written for an empty source with no comments and
no timestamp.
"""

from __future__ import annotations

import io
import logging
import os
import re
import stat
import tempfile
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any, Union

from propcodec.spec import (
    COMMENT_CHARS, DEFAULT_ENCODING, TIMESTAMP_FORMAT,
    escape_comment, escape_key, escape_value,
)
from propcodec.stream import (
    aflush_stream, awrite_bytes, flush_stream, lookup_encoding, write_bytes,
)

logger = logging.getLogger(__name__)

PairSource = Union[Mapping[str, str], Iterable[tuple[str, str]]]

_COMMENT_LINE_SEPARATOR = re.compile(r"\r\n|\r|\n")

DEFAULT_FILE_MODE = 0o644


def iter_pairs(source: PairSource) -> Iterator[tuple[str, str]]:
    """Pairs of a mapping (via items()) or of an iterable of pairs."""
    if isinstance(source, Mapping):
        return iter(source.items())
    return iter(source)


def format_timestamp(timestamp: datetime | None = None) -> str:
    """Format like Java's Date.toString(). Defaults to the current local time."""
    if timestamp is None:
        timestamp = datetime.now().astimezone()
    return timestamp.strftime(TIMESTAMP_FORMAT)


def _target_mode(path: str | os.PathLike, mode: int | None) -> int:
    if mode is not None:
        return mode
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        return DEFAULT_FILE_MODE


class PropertiesWriter:
    """
    Writes key/value pairs to a byte stream in .properties format.

    Usage:
        with open("app.properties", "wb") as f:
            PropertiesWriter(f, comments="App settings").write(store)

        await PropertiesWriter(stream_writer, encoding="utf-8").awrite(pairs)

        data = PropertiesWriter.serialize({"foo": "bar"}, enable_timestamp=False)
    """

    def __init__(
        self,
        stream: Any,
        comments: str | None = None,
        enable_timestamp: bool = True,
        enable_unicode_escape: bool = True,
        encoding: str = DEFAULT_ENCODING,
        timestamp: datetime | None = None,
        line_separator: str = os.linesep,
    ) -> None:
        self._codec = lookup_encoding(encoding)
        self._stream = stream
        self.comments = comments
        self.enable_timestamp = enable_timestamp
        self.enable_unicode_escape = enable_unicode_escape
        self.encoding = encoding
        self.timestamp = timestamp
        self.line_separator = line_separator

    def _comment_lines(self) -> Iterator[str]:
        if not self.comments:
            return
        comments = self.comments.strip()
        if not comments:
            return
        for line in _COMMENT_LINE_SEPARATOR.split(comments):
            line = escape_comment(line.rstrip(), self.enable_unicode_escape)
            if not line:
                yield "#"
            elif line[0] in COMMENT_CHARS:
                yield line
            else:
                yield f"# {line}"

    def lines(self, source: PairSource) -> Iterator[str]:
        """Yield every output line, without terminators. No I/O."""
        yield from self._comment_lines()
        if self.enable_timestamp:
            yield f"# {format_timestamp(self.timestamp)}"
        for key, value in iter_pairs(source):
            key = escape_key(key, self.enable_unicode_escape)
            value = escape_value(value, self.enable_unicode_escape)
            yield f"{key}={value}"

    def _encoded_lines(self, source: PairSource) -> Iterator[bytes]:
        # one incremental encoder per call so BOM-writing codecs emit it once
        encoder = self._codec.incrementalencoder("strict")
        for line in self.lines(source):
            yield encoder.encode(line + self.line_separator)

    def write(self, source: PairSource) -> int:
        """Write ``source`` to the stream and flush it. Returns bytes written.

        The stream is left open.
        """
        written = 0
        for data in self._encoded_lines(source):
            write_bytes(self._stream, data)
            written += len(data)
        flush_stream(self._stream)
        logger.debug("Wrote %d bytes (%s)", written, self.encoding)
        return written

    async def awrite(self, source: PairSource) -> int:
        """Async version of write(), awaiting each line before the next."""
        written = 0
        for data in self._encoded_lines(source):
            await awrite_bytes(self._stream, data)
            written += len(data)
        await aflush_stream(self._stream)
        logger.debug("Wrote %d bytes (%s)", written, self.encoding)
        return written

    @staticmethod
    def serialize(source: PairSource, **options: Any) -> bytes:
        """Serialize pairs to bytes. Pure apart from the default timestamp."""
        buf = io.BytesIO()
        PropertiesWriter(buf, **options).write(source)
        return buf.getvalue()

    @staticmethod
    def dump(source: PairSource, path: str | os.PathLike, mode: int | None = None, **options: Any) -> int:
        """Write pairs to a file atomically. Returns bytes written.

        Uses write-to-temp-then-rename so the target is never left partially
        written. The temp file gets ``mode`` before it replaces the target;
        without one, an existing target keeps its permissions and a new file
        gets 0644.
        """
        data = PropertiesWriter.serialize(source, **options)
        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".properties.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _target_mode(path, mode))
            os.replace(tmp_path, path)
        except BaseException:
            # Clean up temp file on failure
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Saved %s (%d bytes)", path, len(data))
        return len(data)

    @staticmethod
    async def adump(source: PairSource, path: str | os.PathLike, mode: int | None = None, **options: Any) -> int:
        """Async version of dump(), writing the temp file through aiofiles."""
        import aiofiles
        import aiofiles.os

        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".properties.tmp")
        os.close(fd)
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                written = await PropertiesWriter(f, **options).awrite(source)
            os.chmod(tmp_path, _target_mode(path, mode))
            await aiofiles.os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Saved %s (%d bytes)", path, written)
        return written
