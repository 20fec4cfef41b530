"""
Error Taxonomy

Every failure the client reports is one of these exceptions. Each carries an
ErrorKind so callers holding an Err result can branch on the category without
isinstance chains.

    TransportError          - connection refused, timeout, DNS failure
    HttpStatusError         - non-200 status with an exchange error code
    MalformedResponseError  - non-200 status whose body is not a recognizable error
    DecodeError             - 200 status whose body is not JSON
    StreamDecodeError       - streaming frame that is not JSON
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Category of a client failure."""

    TRANSPORT = "transport"
    EXCHANGE = "exchange"
    MALFORMED = "malformed"
    DECODE = "decode"
    STREAM_DECODE = "stream_decode"


class CobinhoodError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransportError(CobinhoodError):
    """The request never produced an HTTP response."""

    kind = ErrorKind.TRANSPORT


class HttpStatusError(CobinhoodError):
    """
    The exchange rejected the request.

    Attributes:
        code: Exchange error code from `error.error_code` (e.g. "insufficient_balance")
        status: HTTP status code
    """

    kind = ErrorKind.EXCHANGE

    def __init__(self, code: Any, status: int):
        super().__init__(f"Exchange error {code} (HTTP {status})")
        self.code = code
        self.status = status


class MalformedResponseError(CobinhoodError):
    """Non-success response whose body could not be read as an exchange error."""

    kind = ErrorKind.MALFORMED

    MESSAGE = "JSON response from Cobinhood is malformed"

    def __init__(self, status: int, body: str, cause: Optional[BaseException] = None):
        super().__init__(self.MESSAGE, cause)
        self.status = status
        self.body = body


class DecodeError(CobinhoodError):
    """Successful response whose body is not structured JSON or has an unexpected shape."""

    kind = ErrorKind.DECODE

    def __init__(
        self,
        body: str,
        cause: Optional[BaseException] = None,
        message: str = "Response body is not valid JSON"
    ):
        super().__init__(message, cause)
        self.body = body


class StreamDecodeError(CobinhoodError):
    """Inbound streaming frame that could not be decoded."""

    kind = ErrorKind.STREAM_DECODE

    def __init__(self, raw: Any, cause: Optional[BaseException] = None):
        super().__init__("Streaming frame is not valid JSON", cause)
        self.raw = raw
