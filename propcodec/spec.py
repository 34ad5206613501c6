"""
Java .properties Format
=======================

Layout:
    # comment                    <- '#' or '!' as first non-blank char
    ! another comment
    key=value                    <- separator is '=', ':' or whitespace
    key: value
    key value
    long.value=first part \\     <- odd trailing backslash joins the next line
               second part       <- leading whitespace of the next line dropped

Escapes (both directions):
    \\t \\n \\r \\f               <- TAB, LF, CR, FF
    \\\\ \\= \\: \\# \\! \\<space>   <- literal character
    \\uXXXX                      <- UTF-16 code unit, surrogate pairs combine

Decoding is permissive:
    - Unknown escapes drop the backslash ("\\q" -> "q")
    - "\\u" without four hex digits yields a literal "u"
    - A lone trailing backslash is kept as a backslash

Encoding:
    - Keys escape every space, values only their leading spaces
    - '=', ':', '#', '!' are escaped in keys and values
    - Code points >= 0x80 become lowercase "\\uxxxx" when Unicode escaping is on
"""

from __future__ import annotations

DEFAULT_ENCODING = "latin1"
DEFAULT_CHUNK_SIZE = 8192

# Safety limit for path-based helpers
MAX_FILE_SIZE = 100 * 1024 * 1024

EXTENSION = ".properties"

# Matches Java's Date.toString(), e.g. "Mon Oct 31 21:05:00 GMT 2016"
TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Z %Y"

COMMENT_CHARS = "#!"
KEY_TERMINATORS = "=:"
WHITESPACE = " \t\f"
LINE_TERMINATORS = "\r\n"

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_UNESCAPES = {
    "t": "\t",
    "n": "\n",
    "r": "\r",
    "f": "\f",
}

_CONTROL_ESCAPES = {
    "\\": "\\\\",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
}

_STRUCTURAL_ESCAPES = {c: "\\" + c for c in "=:#!"}


def unescape(raw: str) -> str:
    """Decode the escapes in a raw key or value.

    Never raises: malformed escapes degrade to literal characters.
    """
    if "\\" not in raw:
        return raw

    out: list[str] = []
    i = 0
    n = len(raw)
    while i < n:
        c = raw[i]
        i += 1
        if c != "\\":
            out.append(c)
            continue
        if i >= n:
            out.append("\\")
            break
        c = raw[i]
        i += 1
        if c == "u":
            code = _hex4(raw, i)
            if code is None:
                out.append("u")
                continue
            i += 4
            if 0xD800 <= code <= 0xDBFF and raw.startswith("\\u", i):
                low = _hex4(raw, i + 2)
                if low is not None and 0xDC00 <= low <= 0xDFFF:
                    code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
                    i += 6
            out.append(chr(code))
        else:
            out.append(_UNESCAPES.get(c, c))
    return "".join(out)


def _hex4(text: str, start: int) -> int | None:
    digits = text[start:start + 4]
    if len(digits) == 4 and all(d in HEX_DIGITS for d in digits):
        return int(digits, 16)
    return None


def _unicode_escape(c: str) -> str:
    code = ord(c)
    if code > 0xFFFF:
        code -= 0x10000
        return "\\u%04x\\u%04x" % (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF))
    return "\\u%04x" % code


def _escape(text: str, structural: bool, escape_spaces: int, unicode_escape: bool) -> str:
    """Escape ``text``; the first ``escape_spaces`` spaces become "\\ "."""
    out: list[str] = []
    for i, c in enumerate(text):
        if c in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[c])
        elif structural and c in _STRUCTURAL_ESCAPES:
            out.append(_STRUCTURAL_ESCAPES[c])
        elif c == " " and i < escape_spaces:
            out.append("\\ ")
        elif unicode_escape and ord(c) >= 0x80:
            out.append(_unicode_escape(c))
        else:
            out.append(c)
    return "".join(out)


def escape_key(key: str, unicode_escape: bool = True) -> str:
    """Escape a property key. Every space is escaped."""
    return _escape(key, True, len(key), unicode_escape)


def escape_value(value: str, unicode_escape: bool = True) -> str:
    """Escape a property value.

    Only leading spaces are escaped; tabs and form feeds are always escaped,
    so nothing leading is lost to the reader's whitespace skipping.
    """
    leading = len(value) - len(value.lstrip(" "))
    return _escape(value, True, leading, unicode_escape)


def escape_comment(text: str, unicode_escape: bool = True) -> str:
    """Escape one line of comment text."""
    return _escape(text, False, 0, unicode_escape)
