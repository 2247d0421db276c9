from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from models.cache_models import CacheKey


__all__: list[str] = ["InFlightManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


def _describe(key: CacheKey) -> str:
    return f"{key.source_lang} > {key.target_lang} '{StringUtils.truncate(key.text, 16)}'"


class InFlightManager:
    """Shares one engine call between concurrent requests for the same cache key.

    The first caller for a key registers a Future and performs the translation. Later callers
    await that Future instead of calling the engine again, for as long as the leader itself may
    legitimately take; the caller supplies that bound.
    """

    def __init__(self) -> None:
        self._inflight: dict[CacheKey, asyncio.Future[str]] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self._is_initialized: bool = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    def pending_count(self) -> int:
        return len(self._inflight)

    async def component_load(self) -> None:
        self._is_initialized = True
        logger.info("InFlightManager initialized successfully")

    async def component_teardown(self) -> None:
        """Cancel pending futures and clear the in-flight state."""
        self._is_initialized = False
        async with self._lock:
            for fut in self._inflight.values():
                if not fut.done():
                    fut.cancel()
            self._inflight.clear()
        logger.info("InFlightManager torn down and in-flight state cleared")

    async def mark_inflight_start(self, cache_key: CacheKey, wait_timeout: float | None = None) -> str | None:
        """Register the caller as leader for ``cache_key``, or wait for the current leader.

        Args:
            cache_key (CacheKey): Exact (text, source, target) key of the translation.
            wait_timeout (float | None): Longest wait for the leader's result. None waits until
                the leader stores a result or an exception.

        Returns:
            str | None: The leader's translated text if a request was already running,
            or None if the caller has just become the leader.

        Raises:
            TimeoutError: If waiting for the leader's result times out or the leader was cancelled.
            Exception: Whatever the leader stored with ``store_inflight_exception``.
        """
        if not self._is_initialized:
            return None

        async with self._lock:
            fut: asyncio.Future[str] | None = self._inflight.get(cache_key)
            if fut is None:
                self._inflight[cache_key] = asyncio.get_running_loop().create_future()
                logger.debug("Leading translation for %s", _describe(cache_key))
                return None
        logger.debug("Joining in-flight translation for %s", _describe(cache_key))

        try:
            # shield: a follower giving up must not cancel the leader's future
            async with asyncio.timeout(wait_timeout):
                return await asyncio.shield(fut)
        except TimeoutError:
            await self._discard(cache_key, fut)
            msg: str = f"No in-flight result within {wait_timeout} sec for {_describe(cache_key)}"
            raise TimeoutError(msg) from None
        except asyncio.CancelledError:
            if not fut.cancelled():
                raise
            await self._discard(cache_key, fut)
            msg = f"In-flight translation cancelled for {_describe(cache_key)}"
            raise TimeoutError(msg) from None

    async def _discard(self, cache_key: CacheKey, fut: asyncio.Future[str]) -> None:
        async with self._lock:
            if self._inflight.get(cache_key) is fut:
                del self._inflight[cache_key]

    async def store_inflight_result(self, cache_key: CacheKey, result: str) -> None:
        """Complete the leader's future with ``result`` and release the key."""
        async with self._lock:
            fut: asyncio.Future[str] | None = self._inflight.pop(cache_key, None)
        if fut is not None and not fut.done():
            fut.set_result(result)

    async def store_inflight_exception(self, cache_key: CacheKey, exc: BaseException) -> None:
        """Fail the leader's future with ``exc`` and release the key."""
        async with self._lock:
            fut: asyncio.Future[str] | None = self._inflight.pop(cache_key, None)
        if fut is not None and not fut.done():
            fut.set_exception(exc)
            # Followers may not exist; mark the exception as retrieved.
            fut.exception()
