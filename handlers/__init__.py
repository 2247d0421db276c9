"""Communication handlers for VoiceFeed.

This package provides the asynchronous HTTP client used by the HTTP translation engine.
"""

from handlers.async_comm import AsyncCommError, AsyncCommInvalidContentTypeError, AsyncCommTimeoutError, AsyncHttp

__all__: list[str] = [
    "AsyncCommError",
    "AsyncCommInvalidContentTypeError",
    "AsyncCommTimeoutError",
    "AsyncHttp",
]
