"""
Converters - Convert a PropertiesStore to/from JSON and CSV.

Every format goes both ways:
  - to_json / from_json   (flat object of string keys to string values)
  - to_csv / from_csv     (header row, then one "key,value" row per property)
"""

from __future__ import annotations

import csv
import io
import json

from propcodec.document import PropertiesStore
from propcodec.spec import MAX_FILE_SIZE


# =============================================================================
# JSON
# =============================================================================

def to_json(store: PropertiesStore, indent: int = 2) -> str:
    """Convert a store to a JSON object, keeping its key order."""
    return json.dumps(dict(store.items()), indent=indent, ensure_ascii=False)


def from_json(json_str: str) -> PropertiesStore:
    """Create a store from a JSON object.

    Entries whose key or value is not a string are skipped.
    """
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ValueError("Invalid properties JSON: expected a JSON object at top level")

    store = PropertiesStore()
    for key, val in data.items():
        if isinstance(key, str) and isinstance(val, str):
            store.set(key, val)
    return store


# =============================================================================
# CSV
# =============================================================================

_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", ";")
_FORMULA_QUOTE = "'"


def _escape_csv_formula(value: str) -> str:
    """Prefix cells a spreadsheet would run as a formula (=, +, -, @, tab, CR, ;).

    Cells that already start with the quote are prefixed too, so
    _unescape_csv_formula() can always strip exactly one.
    """
    stripped = value.lstrip()
    if value.startswith(_FORMULA_QUOTE) or (stripped and stripped[0] in _FORMULA_CHARS):
        return _FORMULA_QUOTE + value
    return value


def _unescape_csv_formula(value: str) -> str:
    if value.startswith(_FORMULA_QUOTE):
        return value[1:]
    return value


def to_csv(store: PropertiesStore) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["key", "value"])
    for key, value in store.items():
        writer.writerow([_escape_csv_formula(key), _escape_csv_formula(value)])
    return buf.getvalue()


def from_csv(csv_str: str) -> PropertiesStore:
    """Create a store from "key,value" rows. The header row is skipped.

    Rows with fewer than two columns are ignored. One leading quote added
    by to_csv() is stripped from every cell.
    """
    old_limit = csv.field_size_limit()
    csv.field_size_limit(MAX_FILE_SIZE)
    try:
        reader = csv.reader(io.StringIO(csv_str))
        next(reader, None)

        store = PropertiesStore()
        for row in reader:
            if len(row) < 2:
                continue
            store.set(_unescape_csv_formula(row[0]), _unescape_csv_formula(row[1]))
        return store
    finally:
        csv.field_size_limit(old_limit)


# =============================================================================
# Auto-detect and convert
# =============================================================================

CONVERTERS_TO = {
    "json": to_json,
    "csv": to_csv,
}

CONVERTERS_FROM = {
    "json": from_json,
    "csv": from_csv,
}


def convert_to(store: PropertiesStore, fmt: str) -> str:
    """Convert a store to the specified format."""
    converter = CONVERTERS_TO.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_TO.keys())}")
    return converter(store)


def convert_from(data: str, fmt: str) -> PropertiesStore:
    """Create a store from data in the specified format."""
    converter = CONVERTERS_FROM.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_FROM.keys())}")
    return converter(data)
