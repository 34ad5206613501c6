"""
propcodec - Java .properties codec.
Streaming reader, line-at-a-time writer, observable in-memory store.

Latin-1 by default, any Python text codec on request.
"""

__version__ = "0.1.0"

from propcodec.spec import DEFAULT_ENCODING, escape_comment, escape_key, escape_value, unescape
from propcodec.errors import EncodingError, PropertiesError, StreamError
from propcodec.document import PropertiesStore
from propcodec.reader import PropertiesParser, PropertiesReader
from propcodec.writer import PropertiesWriter
