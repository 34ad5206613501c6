"""
Unit Tests - Test individual components in isolation.
"""

import re

import pytest

from propcodec.spec import (
    DEFAULT_CHUNK_SIZE, DEFAULT_ENCODING,
    escape_comment, escape_key, escape_value, unescape,
)
from propcodec.document import LogicalLine, PropertiesStore, StoreEvent
from propcodec.reader import PropertiesParser, split_property
from propcodec.errors import EncodingError, PropertiesError, StreamError
from propcodec.stream import is_interactive, lookup_encoding


# =============================================================================
# Constants
# =============================================================================

class TestConstants:

    def test_defaults(self):
        assert DEFAULT_ENCODING == "latin1"
        assert DEFAULT_CHUNK_SIZE == 8192


# =============================================================================
# unescape
# =============================================================================

class TestUnescape:

    def test_plain_text_unchanged(self):
        assert unescape("foo bar") == "foo bar"

    def test_control_escapes(self):
        assert unescape("\\t\\n\\r\\f") == "\t\n\r\f"

    def test_structural_escapes(self):
        assert unescape("\\=\\:\\#\\!\\ ") == "=:#! "

    def test_escaped_backslash(self):
        assert unescape("f\\\\oo") == "f\\oo"

    def test_unknown_escape_drops_backslash(self):
        assert unescape("\\q\\z") == "qz"

    def test_unicode_escape(self):
        assert unescape("foo\\u00a5bar") == "foo¥bar"
        assert unescape("\\u00A5") == "¥"

    def test_surrogate_pair_combines(self):
        assert unescape("\\ud842\\udfb7\\ud842\\udfbe") == "\U00020bb7\U00020bbe"

    def test_lone_high_surrogate(self):
        assert unescape("\\ud842") == "\ud842"
        assert unescape("\\ud842x") == "\ud842x"

    def test_high_surrogate_followed_by_non_surrogate(self):
        assert unescape("\\ud842\\u0041") == "\ud842A"

    def test_malformed_unicode_escape_yields_u(self):
        assert unescape("\\u12g4") == "u12g4"
        assert unescape("\\u12") == "u12"
        assert unescape("\\u") == "u"

    def test_trailing_backslash_kept(self):
        assert unescape("abc\\") == "abc\\"

    def test_idempotent_without_escapes(self):
        once = unescape("\\ foo\\=bar")
        assert unescape(once) == once


# =============================================================================
# escape_key / escape_value / escape_comment
# =============================================================================

class TestEscape:

    def test_key_escapes_every_space(self):
        assert escape_key("foo bar") == "foo\\ bar"
        assert escape_key(" foo ") == "\\ foo\\ "

    def test_value_escapes_leading_spaces_only(self):
        assert escape_value(" bar ") == "\\ bar "
        assert escape_value("  a b") == "\\ \\ a b"
        assert escape_value("a b") == "a b"

    def test_structural_characters(self):
        assert escape_key("foo=:#!") == "foo\\=\\:\\#\\!"
        assert escape_value("bar=:#!") == "bar\\=\\:\\#\\!"

    def test_control_characters(self):
        assert escape_key("foo\f\n\r\t") == "foo\\f\\n\\r\\t"
        assert escape_value("bar\f\n\r\t") == "bar\\f\\n\\r\\t"
        assert escape_value("f\\oo") == "f\\\\oo"

    def test_leading_tab_survives(self):
        assert escape_value("\tx") == "\\tx"

    def test_unicode_escape_lowercase(self):
        assert escape_key("foo¥bar") == "foo\\u00a5bar"
        assert escape_value("É") == "\\u00c9"

    def test_astral_becomes_surrogate_pair(self):
        assert escape_value("\U00020bb7") == "\\ud842\\udfb7"

    def test_unicode_escape_disabled(self):
        assert escape_value("fu¥baz", unicode_escape=False) == "fu¥baz"
        assert escape_key("\U00020bb7", unicode_escape=False) == "\U00020bb7"

    def test_comment_keeps_structural_characters(self):
        assert escape_comment("This#is!a=comment: ok") == "This#is!a=comment: ok"

    def test_comment_escapes_controls_and_unicode(self):
        assert escape_comment("tab\there") == "tab\\there"
        assert escape_comment("This¥is") == "This\\u00a5is"
        assert escape_comment("This¥is", unicode_escape=False) == "This¥is"

    @pytest.mark.parametrize("text", [
        "",
        "plain",
        " leading and trailing ",
        "\tmixed\fwhite\nspace\r",
        "=:#!\\",
        "¥€\U00020bb7",
    ])
    def test_decode_inverts_encode(self, text):
        assert unescape(escape_key(text)) == text
        assert unescape(escape_value(text)) == text
        assert unescape(escape_value(text, unicode_escape=False)) == text


# =============================================================================
# split_property
# =============================================================================

class TestSplitProperty:

    @pytest.mark.parametrize("text,expected", [
        ("foo=bar", ("foo", "bar")),
        ("foo:bar", ("foo", "bar")),
        ("foo bar", ("foo", "bar")),
        ("foo : bar", ("foo", "bar")),
        ("foo\t\tbar", ("foo", "bar")),
        ("foo", ("foo", "")),
        ("foo=", ("foo", "")),
        ("=bar", ("", "bar")),
        ("=", ("", "")),
        ("foo=:#!=bar", ("foo", ":#!=bar")),
        ("foo = = bar", ("foo", "= bar")),
        ("foo\\=bar=baz", ("foo\\=bar", "baz")),
        ("foo\\ bar baz", ("foo\\ bar", "baz")),
        ("foo\\\\=bar", ("foo\\\\", "bar")),
    ])
    def test_split(self, text, expected):
        assert split_property(text) == expected

    def test_value_keeps_trailing_whitespace(self):
        assert split_property("foo = bar  ") == ("foo", "bar  ")


# =============================================================================
# PropertiesParser
# =============================================================================

class TestPropertiesParser:

    def _parse(self, *chunks):
        parser = PropertiesParser()
        pairs = []
        for chunk in chunks:
            pairs.extend(parser.feed(chunk))
        pairs.extend(parser.close())
        return pairs

    def test_pair_emitted_on_terminator(self):
        parser = PropertiesParser()
        assert parser.feed("foo=bar") == []
        assert parser.feed("\n") == [("foo", "bar")]
        assert parser.close() == []

    def test_close_flushes_unterminated_line(self):
        parser = PropertiesParser()
        assert parser.feed("foo=bar") == []
        assert parser.close() == [("foo", "bar")]

    def test_feed_after_close_raises(self):
        parser = PropertiesParser()
        parser.close()
        with pytest.raises(RuntimeError):
            parser.feed("foo=bar")

    def test_close_twice(self):
        parser = PropertiesParser()
        parser.feed("foo=bar")
        assert parser.close() == [("foo", "bar")]
        assert parser.close() == []

    def test_chunking_does_not_matter(self):
        text = "# c\r\nfoo=b\\\r\n   ar\r\n\r\nfu : baz\rfizz buzz\\\n"
        whole = self._parse(text)
        assert whole == [("foo", "bar"), ("fu", "baz"), ("fizz", "buzz")]
        assert self._parse(*text) == whole

    def test_crlf_split_across_chunks(self):
        assert self._parse("a=1\r", "\nb=2\n") == [("a", "1"), ("b", "2")]

    def test_blank_and_whitespace_lines_ignored(self):
        assert self._parse("\n   \n\t\f\nfoo=bar\n\n") == [("foo", "bar")]

    def test_comments_ignored(self):
        assert self._parse("# foo=bar\n! fu=baz\n   # indented\n") == []

    def test_comment_never_continues(self):
        assert self._parse("# comment \\\nfoo=bar\n") == [("foo", "bar")]

    def test_continuation_strips_leading_whitespace(self):
        assert self._parse("a=b\\\n   \tc\n") == [("a", "bc")]

    def test_continuation_then_empty_line_ends_entry(self):
        assert self._parse("a=b\\\n\nc=d\n") == [("a", "b"), ("c", "d")]

    def test_even_backslashes_do_not_continue(self):
        assert self._parse("a=b\\\\\nc=d\n") == [("a", "b\\"), ("c", "d")]

    def test_odd_backslashes_continue(self):
        assert self._parse("a=b\\\\\\\nc\n") == [("a", "b\\c")]

    def test_trailing_continuation_at_end_of_input(self):
        assert self._parse("a=b\\") == [("a", "b")]

    def test_hash_inside_continuation_is_data(self):
        assert self._parse("a=b\\\n#c\n") == [("a", "b#c")]

    def test_duplicate_keys_emitted_in_order(self):
        assert self._parse("a=1\na=2\n") == [("a", "1"), ("a", "2")]

    def test_to_pair(self):
        assert PropertiesParser.to_pair(LogicalLine("\\ foo\\ =\\ bar ")) == (" foo ", " bar ")


# =============================================================================
# Data model
# =============================================================================

class TestLogicalLine:

    def test_defaults(self):
        line = LogicalLine(text="foo=bar")
        assert line.start_line == 1
        assert line.line_count == 1


# =============================================================================
# PropertiesStore
# =============================================================================

class TestPropertiesStore:

    def test_set_and_get(self):
        store = PropertiesStore()
        assert store.set("foo", "bar") is store
        assert store["foo"] == "bar"
        assert store.get("missing") is None
        assert store.get("missing", "x") == "x"
        assert "foo" in store
        assert len(store) == 1

    def test_init_from_pairs_and_mapping(self):
        assert list(PropertiesStore([("a", "1"), ("b", "2")]).items()) == [("a", "1"), ("b", "2")]
        assert list(PropertiesStore({"a": "1"}).items()) == [("a", "1")]

    def test_update_keeps_position(self):
        store = PropertiesStore([("a", "1"), ("b", "2")])
        store["a"] = "3"
        assert list(store.items()) == [("a", "3"), ("b", "2")]

    def test_non_string_rejected(self):
        store = PropertiesStore()
        with pytest.raises(TypeError):
            store.set("foo", 1)
        with pytest.raises(TypeError):
            store.set(None, "bar")

    def test_change_event_only_on_change(self):
        store = PropertiesStore()
        events = []
        store.on("change", events.append)
        store.set("foo", "bar")
        store.set("foo", "bar")
        store.set("foo", "baz")
        assert [(e.key, e.old_value, e.new_value) for e in events] == [
            ("foo", None, "bar"),
            ("foo", "bar", "baz"),
        ]
        assert all(isinstance(e, StoreEvent) and e.properties is store for e in events)

    def test_off_removes_listener(self):
        store = PropertiesStore()
        events = []
        store.on("change", events.append)
        store.off("change", events.append)
        store.set("foo", "bar")
        assert events == []

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            PropertiesStore().on("bogus", print)

    def test_delete_key(self):
        store = PropertiesStore([("foo", "bar")])
        events = []
        store.on("delete", events.append)
        assert store.delete("foo") is True
        assert store.delete("foo") is False
        assert [(e.key, e.old_value) for e in events] == [("foo", "bar")]

    def test_delete_pattern(self):
        store = PropertiesStore([("db.host", "h"), ("db.port", "1"), ("app", "x")])
        events = []
        store.on("delete", events.append)
        assert store.delete(re.compile(r"^db\.")) is True
        assert list(store) == ["app"]
        assert len(events) == 2

    def test_del_missing_raises(self):
        with pytest.raises(KeyError):
            del PropertiesStore()["nope"]

    def test_clear_emits_delete_per_key_then_clear(self):
        store = PropertiesStore([("a", "1"), ("b", "2")])
        events = []
        store.on("delete", events.append)
        store.on("clear", events.append)
        store.clear()
        assert len(store) == 0
        assert [(e.name, e.key, e.old_value) for e in events] == [
            ("delete", "a", "1"),
            ("delete", "b", "2"),
            ("clear", None, None),
        ]

    def test_clear_empty_store_emits_nothing(self):
        store = PropertiesStore()
        events = []
        store.on("clear", events.append)
        store.clear()
        assert events == []

    def test_has(self):
        store = PropertiesStore([("foo", "bar"), ("fu", "baz")])
        assert store.has("foo") is True
        assert store.has("f") is False
        assert store.has(re.compile(r"^f")) is True
        assert store.has(re.compile(r"^ba")) is False

    def test_search(self):
        store = PropertiesStore([("db.host", "h"), ("app", "x"), ("db.port", "1")])
        assert list(store.search(r"^db\.")) == [("db.host", "h"), ("db.port", "1")]

    def test_replace(self):
        store = PropertiesStore([("db.host", "h"), ("app", "x")])
        store.replace(re.compile("host"), lambda value, key, s: f"{key}:{value.upper()}")
        assert store["db.host"] == "db.host:H"
        assert store["app"] == "x"

    def test_repr(self):
        store = PropertiesStore([(str(i), "v") for i in range(7)])
        assert repr(store) == "PropertiesStore(size=7, keys=['0', '1', '2', '3', '4', '...'])"


# =============================================================================
# Stream adapters and errors
# =============================================================================

class TestStreamHelpers:

    def test_lookup_encoding(self):
        assert lookup_encoding("latin1").name == "iso8859-1"

    def test_unknown_encoding(self):
        with pytest.raises(EncodingError) as exc_info:
            lookup_encoding("no-such-encoding")
        assert isinstance(exc_info.value, LookupError)
        assert isinstance(exc_info.value, PropertiesError)
        assert exc_info.value.encoding == "no-such-encoding"

    def test_bytes_codec_rejected(self):
        with pytest.raises(EncodingError):
            lookup_encoding("hex")

    def test_is_interactive(self):
        class Tty:
            def isatty(self):
                return True

        class Closed:
            def isatty(self):
                raise ValueError("I/O operation on closed file")

        assert is_interactive(Tty()) is True
        assert is_interactive(Closed()) is False
        assert is_interactive(object()) is False

    def test_error_hierarchy(self):
        assert issubclass(StreamError, PropertiesError)
        assert issubclass(EncodingError, PropertiesError)
