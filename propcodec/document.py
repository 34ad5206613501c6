"""
Properties Document - In-memory representation of a .properties file.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Union

from propcodec.spec import DEFAULT_ENCODING

EVENTS = frozenset({"change", "delete", "clear", "load", "store", "error"})

KeyPattern = Union[str, "re.Pattern[str]"]


@dataclass
class LogicalLine:
    """One property entry after joining its continued physical lines."""
    text: str
    start_line: int = 1   # 1-based physical line where the entry began
    line_count: int = 1   # physical lines it spans


@dataclass
class StoreEvent:
    """Passed to every callback registered with PropertiesStore.on()."""
    name: str
    properties: PropertiesStore
    key: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


class PropertiesStore(MutableMapping[str, str]):
    """
    Ordered, observable set of string properties.

    Acts as the reader's sink (``set``) and the writer's source (``items``).
    Keys keep their first insertion order; setting an existing key replaces
    its value in place.

    Usage:
        store = PropertiesStore([("foo", "bar")])
        store.on("change", lambda event: print(event.key, event.new_value))
        store.set("fu", "baz")

        with open("app.properties", "rb") as f:
            store.load(f)
        with open("app.properties", "wb") as f:
            store.store(f, comments="App settings")
    """

    def __init__(self, pairs: Iterable[tuple[str, str]] | Mapping[str, str] | None = None) -> None:
        self._map: dict[str, str] = {}
        self._listeners: dict[str, list[Callable[[StoreEvent], Any]]] = {}
        if pairs is not None:
            items = pairs.items() if isinstance(pairs, Mapping) else pairs
            for key, value in items:
                self.set(key, value)

    # --- events ---

    def on(self, event: str, callback: Callable[[StoreEvent], Any]) -> PropertiesStore:
        """Register ``callback`` for ``event``. Returns self for chaining."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event!r}. Supported: {sorted(EVENTS)}")
        self._listeners.setdefault(event, []).append(callback)
        return self

    def off(self, event: str, callback: Callable[[StoreEvent], Any]) -> PropertiesStore:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)
        return self

    def _emit(self, name: str, **details: Any) -> None:
        listeners = self._listeners.get(name)
        if not listeners:
            return
        event = StoreEvent(name=name, properties=self, **details)
        for callback in list(listeners):
            callback(event)

    # --- mapping protocol ---

    def __getitem__(self, key: str) -> str:
        return self._map[key]

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        old_value = self._map.pop(key)
        self._emit("delete", key=key, old_value=old_value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def set(self, key: str, value: str) -> PropertiesStore:
        """Set ``key`` to ``value``. Returns self for chaining.

        Fires ``change`` only when the value actually changes.
        """
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(
                f"Property key and value must be strings, got "
                f"{type(key).__name__} and {type(value).__name__}"
            )
        old_value = self._map.get(key)
        if value != old_value:
            self._map[key] = value
            self._emit("change", key=key, old_value=old_value, new_value=value)
        return self

    def clear(self) -> None:
        """Remove every property: one ``delete`` event per key, then ``clear``."""
        if not self._map:
            return
        for key in list(self._map):
            del self[key]
        self._emit("clear")

    # --- regex helpers ---

    def has(self, key: KeyPattern) -> bool:
        """True if ``key`` exists, or any key matches a compiled regex."""
        if isinstance(key, re.Pattern):
            return any(key.search(k) for k in self._map)
        return key in self._map

    def delete(self, key: KeyPattern) -> bool:
        """Delete ``key``, or every key matching a compiled regex.

        Returns True if anything was removed.
        """
        if isinstance(key, re.Pattern):
            matches = [k for k in self._map if key.search(k)]
        else:
            matches = [key] if key in self._map else []
        for k in matches:
            del self[k]
        return bool(matches)

    def search(self, pattern: re.Pattern[str] | str) -> Iterator[tuple[str, str]]:
        """Yield (key, value) for each key matching ``pattern``."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        for key, value in list(self._map.items()):
            if regex.search(key):
                yield key, value

    def replace(
        self,
        pattern: re.Pattern[str] | str,
        callback: Callable[[str, str, PropertiesStore], str],
    ) -> PropertiesStore:
        """Set each matching key to ``callback(value, key, store)``."""
        for key, value in list(self.search(pattern)):
            self.set(key, callback(value, key, self))
        return self

    # --- persistence ---

    def load(self, stream: Any, encoding: str = DEFAULT_ENCODING) -> int:
        """Read properties from a binary stream into this store.

        Later lines win for repeated keys. Returns the number of pairs read.
        """
        from propcodec.reader import PropertiesReader

        try:
            count = PropertiesReader(stream, encoding=encoding).read(self)
        except Exception as e:
            self._emit("error", options={"error": e})
            raise
        self._emit("load", options={"encoding": encoding, "count": count})
        return count

    async def aload(self, stream: Any, encoding: str = DEFAULT_ENCODING) -> int:
        """Async version of load()."""
        from propcodec.reader import PropertiesReader

        try:
            count = await PropertiesReader(stream, encoding=encoding).aread(self)
        except Exception as e:
            self._emit("error", options={"error": e})
            raise
        self._emit("load", options={"encoding": encoding, "count": count})
        return count

    def _writer_options(
        self,
        comments: str | None,
        disable_timestamp: bool,
        disable_unicode_escape: bool,
        encoding: str,
        **extra: Any,
    ) -> dict[str, Any]:
        return dict(
            comments=comments,
            enable_timestamp=not disable_timestamp,
            enable_unicode_escape=not disable_unicode_escape,
            encoding=encoding,
            **extra,
        )

    def store(
        self,
        stream: Any,
        comments: str | None = None,
        disable_timestamp: bool = False,
        disable_unicode_escape: bool = False,
        encoding: str = DEFAULT_ENCODING,
        **extra: Any,
    ) -> int:
        """Write this store to a binary stream. Returns bytes written.

        By default a timestamp comment is written and non-ASCII characters
        are converted to Unicode escapes.
        """
        from propcodec.writer import PropertiesWriter

        options = self._writer_options(
            comments, disable_timestamp, disable_unicode_escape, encoding, **extra
        )
        try:
            written = PropertiesWriter(stream, **options).write(self)
        except Exception as e:
            self._emit("error", options={"error": e})
            raise
        self._emit("store", options=options)
        return written

    async def astore(
        self,
        stream: Any,
        comments: str | None = None,
        disable_timestamp: bool = False,
        disable_unicode_escape: bool = False,
        encoding: str = DEFAULT_ENCODING,
        **extra: Any,
    ) -> int:
        """Async version of store()."""
        from propcodec.writer import PropertiesWriter

        options = self._writer_options(
            comments, disable_timestamp, disable_unicode_escape, encoding, **extra
        )
        try:
            written = await PropertiesWriter(stream, **options).awrite(self)
        except Exception as e:
            self._emit("error", options={"error": e})
            raise
        self._emit("store", options=options)
        return written

    def to_bytes(self, **options: Any) -> bytes:
        """Serialize this store to bytes (PropertiesWriter options)."""
        from propcodec.writer import PropertiesWriter
        return PropertiesWriter.serialize(self, **options)

    def write(self, path: str | Path, **options: Any) -> int:
        """Write this store to a .properties file atomically. Returns bytes written.

        Raises ValueError if path contains '..' (path traversal prevention).
        """
        if ".." in Path(path).parts:
            raise ValueError("Output path must not contain '..' (path traversal)")
        from propcodec.writer import PropertiesWriter
        return PropertiesWriter.dump(self, path, **options)

    def __repr__(self) -> str:
        keys = list(self._map)
        shown = keys[:5] + (["..."] if len(keys) > 5 else [])
        return f"PropertiesStore(size={len(keys)}, keys={shown})"
