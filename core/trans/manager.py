from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Final

from core.trans.engines import (
    DeeplTranslation,  # noqa: F401
    HttpTranslation,  # noqa: F401
    OpenAITranslation,  # noqa: F401
)
from core.trans.interface import (
    NotSupportedLanguagesError,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationTimeoutError,
)
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config
    from core.cache.inflight_manager import InFlightManager
    from core.cache.manager import TranslationCache
    from models.cache_models import CacheKey


__all__: list[str] = ["TransManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ADAPTIVE_LIMITER_ENABLED: bool = True
ADAPTIVE_LIMITER_BASE_COOLDOWN_SEC: float = 1.0
ADAPTIVE_LIMITER_MAX_COOLDOWN_SEC: float = 30.0
ADAPTIVE_LIMITER_RESET_SEC: float = 60.0
ADAPTIVE_LIMITER_LOG_INTERVAL_SEC: float = 5.0

RETRY_BASE_DELAY_SEC: Final[float] = 0.5
INFLIGHT_WAIT_MARGIN_SEC: Final[float] = 1.0


class TransManager:
    """Manager for translation engines.

    Owns the configured engines in priority order and performs single translations through the
    translation cache, the in-flight manager and the active engine. Failures never propagate:
    ``translate`` returns None and the caller keeps showing the original text.
    """

    def __init__(
        self,
        config: Config,
        cache: TranslationCache,
        inflight_manager: InFlightManager | None = None,
    ) -> None:
        """Initialize the TransManager.

        Args:
            config (Config): Configuration containing the translation settings.
            cache (TranslationCache): Cache consulted before, and filled after, every engine call.
            inflight_manager (InFlightManager | None): Coordinator for concurrent identical requests.
        """
        self.config: Config = config
        self.cache: TranslationCache = cache
        self.inflight_manager: InFlightManager | None = inflight_manager
        self._trans_instance: dict[str, TransInterface] = {}
        self._active_engines: list[str] = []
        self._rate_limit_error_count: int = 0
        self._rate_limit_last_error: float = 0.0
        self._rate_limit_until: float = 0.0
        self._rate_limit_last_log: float = 0.0
        self.engine_calls: int = 0
        logger.debug("Registered translation engines: %s", list(TransInterface.registered))

    async def initialize(self) -> None:
        """Instantiate and initialise the engines listed in ``TRANSLATION.ENGINE``."""
        logger.info("TransManager initialization started")

        self._active_engines.clear()
        for _name in self.config.TRANSLATION.ENGINE:
            _cls: type[TransInterface] | None = TransInterface.registered.get(_name)
            if _cls is None:
                logger.critical("Translation class not found: '%s'", _name)
                continue
            _instance: TransInterface = _cls()
            try:
                _instance.initialize(self.config)
            except RuntimeError as err:
                logger.critical("RuntimeError in '%s' translation setup: %s", _name, err)
                continue
            except TranslateExceptionError as err:
                logger.critical("Exception in '%s' translation setup: %s", _name, err)
                continue
            self._trans_instance[_name] = _instance
            self._active_engines.append(_name)
            logger.info("Translation engine initialized: '%s'", _name)

        if not self._active_engines:
            logger.error("No translation engine available; messages will be shown untranslated")

    def fetch_engine_names(self) -> list[str]:
        """Names of the engines still in use, in priority order."""
        return list(self._active_engines)

    @property
    def current_engine_instance(self) -> TransInterface:
        """The highest-priority active engine.

        Raises:
            TranslateExceptionError: If no engine is available.
        """
        try:
            return self._trans_instance[self._active_engines[0]]
        except IndexError as err:
            msg = "No translation engines currently available"
            raise TranslateExceptionError(msg) from err
        except KeyError as err:
            msg = f"Invalid translation engine key: {err}"
            raise TranslateExceptionError(msg) from err

    def refresh_active_engine_list(self) -> None:
        """Drop the current engine from the active list if it reports itself unavailable."""
        if not self._active_engines:
            return
        try:
            if self.current_engine_instance.is_available:
                return
        except TranslateExceptionError:
            return

        removed: str = self._active_engines.pop(0)
        logger.error("Translation engine disabled: '%s'", removed)
        if self._active_engines:
            logger.warning("Falling back to translation engine: '%s'", self._active_engines[0])

    def _rate_limit_blocked(self) -> bool:
        """Check if translation is currently blocked due to rate limiting."""
        if not ADAPTIVE_LIMITER_ENABLED:
            return False

        now: float = time.monotonic()
        if now < self._rate_limit_until:
            if now - self._rate_limit_last_log >= ADAPTIVE_LIMITER_LOG_INTERVAL_SEC:
                logger.warning("Translation temporarily throttled (%.1f sec remaining).", self._rate_limit_until - now)
                self._rate_limit_last_log = now
            return True
        return False

    def _register_rate_limit(self) -> None:
        """Register a rate-limit event and extend the cooldown exponentially."""
        if not ADAPTIVE_LIMITER_ENABLED:
            return

        now: float = time.monotonic()
        if now - self._rate_limit_last_error > ADAPTIVE_LIMITER_RESET_SEC:
            self._rate_limit_error_count = 0

        self._rate_limit_error_count += 1
        self._rate_limit_last_error = now

        backoff: float = ADAPTIVE_LIMITER_BASE_COOLDOWN_SEC * (2 ** (self._rate_limit_error_count - 1))
        backoff = min(backoff, ADAPTIVE_LIMITER_MAX_COOLDOWN_SEC)
        self._rate_limit_until = max(self._rate_limit_until, now + backoff)

    def _handle_translation_failure(
        self, engine: TransInterface | None, err: Exception, *, source_lang: str, target_lang: str
    ) -> None:
        """Log a failed translation and update the limiter and engine list."""
        if isinstance(err, TranslationQuotaExceededError):
            logger.error("Translation quota exceeded: %s", err)
            self.refresh_active_engine_list()
        elif isinstance(err, NotSupportedLanguagesError):
            logger.error("Unsupported language pair (src: '%s', tgt: '%s'): %s", source_lang, target_lang, err)
        elif engine is not None and engine.is_rate_limit_error(err):
            self._register_rate_limit()
            logger.warning("Translation rate limit detected: %s", err)
        else:
            logger.error("Translation failed (src: '%s', tgt: '%s'): %s", source_lang, target_lang, err)
            if engine is not None and not engine.is_available:
                self.refresh_active_engine_list()

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str | None:
        """Translate ``text`` from ``source_lang`` to ``target_lang``.

        Empty text and identity pairs return the text unchanged without touching the cache or an engine.
        A cache hit returns the cached value without an engine call.

        Args:
            text (str): Source text.
            source_lang (str): Source language code.
            target_lang (str): Target language code.

        Returns:
            str | None: The translation, or None if it could not be obtained.
        """
        if not text:
            return ""
        if source_lang == target_lang:
            return text

        cached: str | None = self.cache.lookup(text, source_lang, target_lang)
        if cached is not None:
            return cached

        if self._rate_limit_blocked():
            return None

        try:
            engine: TransInterface = self.current_engine_instance
        except TranslateExceptionError as err:
            logger.debug("Translation skipped: %s", err)
            return None

        cache_key: CacheKey = self.cache.make_key(text, source_lang, target_lang)
        if self.inflight_manager is not None:
            try:
                shared: str | None = await self.inflight_manager.mark_inflight_start(
                    cache_key, self.inflight_wait_timeout()
                )
            except TimeoutError as err:
                logger.warning("Gave up waiting for in-flight translation: %s", err)
                return None
            except TranslateExceptionError as err:
                logger.debug("In-flight translation failed: %s", err)
                return None
            if shared is not None:
                return shared

        try:
            translated: str = await self._call_engine(engine, text, source_lang, target_lang)
        except TranslateExceptionError as err:
            await self._store_inflight_exception(cache_key, err)
            self._handle_translation_failure(engine, err, source_lang=source_lang, target_lang=target_lang)
            return None
        except asyncio.CancelledError:
            await self._store_inflight_exception(cache_key, TranslateExceptionError("Translation cancelled"))
            raise
        except Exception as err:
            await self._store_inflight_exception(cache_key, TranslateExceptionError(f"Translation failed: {err}"))
            raise

        if not translated:
            # An empty reply is treated as "nothing to translate".
            translated = text
        self.cache.store(text, source_lang, target_lang, translated)
        await self._store_inflight_result(cache_key, translated)
        logger.debug(
            "Final translation result (src: '%s', tgt: '%s'): %s",
            source_lang,
            target_lang,
            StringUtils.truncate(translated),
        )
        return translated

    def inflight_wait_timeout(self) -> float | None:
        """Longest time a leader may spend in ``_call_engine``, used as the follower wait limit.

        Covers every attempt plus the retry delays between them. None when calls are unbounded.
        """
        timeout: float = self.config.TRANSLATION.TIMEOUT
        if timeout <= 0:
            return None
        attempts: int = max(0, self.config.TRANSLATION.RETRY_COUNT) + 1
        retry_delays: float = sum(RETRY_BASE_DELAY_SEC * (2**i) for i in range(attempts - 1))
        return timeout * attempts + retry_delays + INFLIGHT_WAIT_MARGIN_SEC

    async def _call_engine(self, engine: TransInterface, text: str, source_lang: str, target_lang: str) -> str:
        """Call the engine with a bounded timeout and bounded retries for transient errors.

        Raises:
            TranslateExceptionError: The last error once the attempts are exhausted, or a permanent error.
        """
        timeout: float = self.config.TRANSLATION.TIMEOUT
        attempts: int = max(0, self.config.TRANSLATION.RETRY_COUNT) + 1
        last_err: TranslateExceptionError = TranslateExceptionError("Translation was not attempted")

        for attempt in range(1, attempts + 1):
            self.engine_calls += 1
            try:
                async with asyncio.timeout(timeout if timeout > 0 else None):
                    result: Result = await engine.translation(content=text, tgt_lang=target_lang, src_lang=source_lang)
            except TimeoutError:
                last_err = TranslationTimeoutError(f"'{engine.engine_name}' did not answer within {timeout} sec")
            except TranslateExceptionError as err:
                if not engine.is_transient_error(err):
                    raise
                last_err = err
            else:
                return StringUtils.ensure_str(result.text)

            if attempt < attempts:
                delay: float = RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1))
                logger.warning("Translation attempt %d/%d failed (%s); retrying in %.1f sec", attempt, attempts, last_err, delay)
                await asyncio.sleep(delay)

        raise last_err

    async def _store_inflight_result(self, cache_key: CacheKey, result: str) -> None:
        if self.inflight_manager is not None:
            await self.inflight_manager.store_inflight_result(cache_key, result)

    async def _store_inflight_exception(self, cache_key: CacheKey, err: Exception) -> None:
        if self.inflight_manager is not None:
            await self.inflight_manager.store_inflight_exception(cache_key, err)

    async def shutdown_engines(self) -> None:
        """Shut down all translation engines."""
        logger.info("Class '%s' termination process started.", self.__class__.__name__)
        for _inst in self._trans_instance.values():
            try:
                await _inst.close()
            except TranslateExceptionError as err:
                logger.error("Error while closing '%s': %s", _inst.fetch_engine_name(), err)
        self._trans_instance.clear()
        self._active_engines.clear()
        logger.info("Class '%s' termination process completed.", self.__class__.__name__)
