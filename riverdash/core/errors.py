"""
riverdash/core/errors.py
Typed fetch failures. The Resource Fetcher turns every transport, HTTP and
parse problem into one of these; nothing above it sees a raw httpx exception.

  FetchError
   ├── NetworkError     no response received (DNS, refused, reset)
   │    └── RequestTimeout
   ├── HttpError        non-2xx response, status + parsed error body
   └── ParseError       2xx response whose body is not valid JSON
"""

from typing import Any, Optional


class FetchError(Exception):
    """Base failure for one resource fetch."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        info: Any = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status  = status
        self.info    = info
        self.cause   = cause

    def to_dict(self) -> dict:
        return {
            "type":    type(self).__name__,
            "message": self.message,
            "status":  self.status,
            "info":    self.info,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"


class NetworkError(FetchError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, status=None, cause=cause)


class RequestTimeout(NetworkError):
    pass


class HttpError(FetchError):
    def __init__(self, status: int, info: Any = None, message: str = ""):
        super().__init__(
            message or "An error occurred while fetching the data.",
            status=status,
            info=info,
        )


class ParseError(FetchError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, status=None, cause=cause)
