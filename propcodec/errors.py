"""
propcodec errors.

Malformed escapes are never errors; only the byte stream and the encoding
name can fail a read or write.
"""


class PropertiesError(Exception):
    """Base class for errors raised by propcodec."""


class EncodingError(PropertiesError, LookupError):
    """The requested byte encoding is unknown. Raised before any I/O."""

    def __init__(self, encoding: str) -> None:
        super().__init__(f"Unsupported encoding: {encoding!r}")
        self.encoding = encoding


class StreamError(PropertiesError):
    """The underlying byte stream failed while reading or writing.

    Pairs already delivered to the sink (or bytes already written) are not
    rolled back.
    """
