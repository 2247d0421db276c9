"""Asynchronous HTTP communication for the translation service.

``AsyncHttp`` wraps a lazily created aiohttp session, decodes responses by content type and maps
aiohttp failures onto ``AsyncCommError``/``AsyncCommTimeoutError``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Final, Literal, Self

import aiohttp
from aiohttp.client import ClientSession

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from aiohttp.client import ClientResponse


__all__: list[str] = [
    "AsyncCommError",
    "AsyncCommInvalidContentTypeError",
    "AsyncCommTimeoutError",
    "AsyncHttp",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

HTTPMethod = Literal["GET", "POST"]

CONNECT_TIMEOUT: Final[float] = 3.0


class AsyncHttp:
    """Asynchronous JSON-over-HTTP client.

    The session is created on first use so that the client can be constructed outside a running loop.
    """

    def __init__(self, *, headers: dict[str, str] | None = None) -> None:
        self.__session: ClientSession | None = None
        self._headers: dict[str, str] = dict(headers or {})
        self.content_handlers: dict[str, Callable[[bytes], Any]] = {}

        self.add_handler("text/plain", lambda x: x.decode("utf-8"))
        self.add_handler("application/json", lambda x: json.loads(x.decode("utf-8")))

    async def __aenter__(self) -> Self:
        self.initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        _ = exc_type, exc_val, exc_tb
        await self.close()

    def initialize_session(self) -> None:
        if self.__session is None or self.__session.closed:
            self.__session = ClientSession(headers=self._headers)
            logger.debug("%s session initialized", self.__class__.__name__)

    @property
    def session(self) -> ClientSession:
        self.initialize_session()
        if self.__session is None:
            msg = "Session could not be initialized"
            raise RuntimeError(msg)
        return self.__session

    @property
    def is_closed(self) -> bool:
        return self.__session is None or self.__session.closed

    async def close(self) -> None:
        if self.__session and not self.__session.closed:
            await self.__session.close()
            logger.debug("%s session closed", self.__class__.__name__)
        self.__session = None

    def add_handler(self, content_type: str, handler: Callable[[bytes], Any]) -> None:
        """Register a decoder for a response content type."""
        if content_type in self.content_handlers:
            logger.warning("Handler for content type '%s' already exists, replacing it", content_type)
        self.content_handlers[content_type] = handler

    async def get(self, *, url: str, total_timeout: float = 10.0) -> Any:
        return await self._request("GET", url=url, total_timeout=total_timeout)

    async def post(self, *, url: str, data: Any | None = None, total_timeout: float = 10.0) -> Any:
        """POST ``data`` as a JSON body and return the decoded response."""
        logger.debug("'url': '%s', 'data': '%s', 'timeout': '%s'", url, data, total_timeout)
        return await self._request("POST", url=url, json=data, total_timeout=total_timeout)

    async def decode_response(self, resp: ClientResponse) -> Any:
        """Decode the body according to its Content-Type.

        Raises:
            AsyncCommInvalidContentTypeError: If no decoder is registered for the content type,
                or the body cannot be decoded.
        """
        content_type: str = resp.headers.get("Content-Type", "").split(";")[0].strip()
        raw: bytes = await resp.read()
        if not raw:
            logger.debug("Received empty response")
            return None

        handler: Callable[[bytes], Any] | None = self.content_handlers.get(content_type)
        if handler is None:
            msg: str = f"Unknown Content-Type '{content_type}'"
            raise AsyncCommInvalidContentTypeError(msg)
        try:
            return handler(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            msg = f"Malformed '{content_type}' response body"
            raise AsyncCommInvalidContentTypeError(msg) from err

    @staticmethod
    def _build_timeout(total_timeout: float) -> aiohttp.ClientTimeout:
        if total_timeout <= 0:
            return aiohttp.ClientTimeout(total=None)
        if total_timeout < CONNECT_TIMEOUT:
            return aiohttp.ClientTimeout(total=total_timeout)
        return aiohttp.ClientTimeout(connect=CONNECT_TIMEOUT, total=total_timeout)

    async def _request(self, method: HTTPMethod, *, url: str, total_timeout: float, **kwargs: Any) -> Any:
        logger.debug("[%s] url=%s timeout=%s", method, url, total_timeout)
        try:
            async with self.session.request(
                method=method,
                url=url,
                timeout=self._build_timeout(total_timeout),
                **kwargs,
            ) as resp:
                resp.raise_for_status()
                return await self.decode_response(resp)

        except TimeoutError as err:
            msg = "Timeout due to a lack of response from the server."
            raise AsyncCommTimeoutError(msg) from err
        except aiohttp.ClientResponseError as err:
            msg = f"Error response from the server (status {err.status})."
            raise AsyncCommError(msg, status=err.status) from err
        except aiohttp.ClientConnectorError as err:
            msg = "The server is not running, or the port is closed."
            raise AsyncCommError(msg) from err
        except aiohttp.ClientError as err:
            msg = "The connection to the server failed."
            raise AsyncCommError(msg) from err


class AsyncCommError(Exception):
    """HTTP communication with a remote service failed.

    Attributes:
        status (int | None): HTTP status code when the server answered with an error response.
    """

    def __init__(self, *args: object, status: int | None = None) -> None:
        super().__init__(*args)
        self.status: int | None = status


class AsyncCommTimeoutError(AsyncCommError):
    """The remote service did not answer in time."""


class AsyncCommInvalidContentTypeError(AsyncCommError):
    """The response body could not be decoded."""
