"""Translation cache.

Memoizes translation results keyed by (source text, source language, target language) for the
lifetime of the owning process. The cache is an owned object injected into the translation manager;
it is never held as module state.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from typing import TYPE_CHECKING

from models.cache_models import CacheKey, CacheStatistics, TranslationCacheEntry
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config

__all__: list[str] = ["TranslationCache"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TranslationCache:
    """In-memory translation cache with an optional LRU capacity bound.

    ``lookup`` only ever answers an exact key match. ``store`` is idempotent for equal values and
    last-write-wins for different values. With ``max_entries == 0`` nothing is ever evicted.

    Attributes:
        max_entries (int): Capacity bound, 0 for unbounded.
    """

    def __init__(self, max_entries: int = 0) -> None:
        if max_entries < 0:
            msg: str = f"max_entries must not be negative: {max_entries}"
            raise ValueError(msg)
        self.max_entries: int = max_entries
        self._entries: OrderedDict[CacheKey, TranslationCacheEntry] = OrderedDict()
        self._hits: int = 0
        self._misses: int = 0
        self._stores: int = 0
        self._evictions: int = 0
        logger.debug("TranslationCache instance created (max_entries=%d)", max_entries)

    @classmethod
    def from_config(cls, config: Config) -> TranslationCache:
        return cls(max_entries=config.TRANSLATION.CACHE_MAX_ENTRIES)

    @staticmethod
    def make_key(text: str, source_lang: str, target_lang: str) -> CacheKey:
        """Build the exact-match key; only the text is normalized (NFC)."""
        return CacheKey(StringUtils.normalize_text(text), source_lang, target_lang)

    def lookup(self, text: str, source_lang: str, target_lang: str) -> str | None:
        """Return the stored translation for the key, or None on a miss.

        Args:
            text (str): Source text.
            source_lang (str): Source language code.
            target_lang (str): Target language code.

        Returns:
            str | None: Cached translation, None if the key was never stored.
        """
        key: CacheKey = self.make_key(text, source_lang, target_lang)
        entry: TranslationCacheEntry | None = self._entries.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache miss (%s > %s): '%s'", source_lang, target_lang, StringUtils.truncate(text))
            return None

        entry.hit_count += 1
        entry.last_used_at = self._now()
        self._entries.move_to_end(key)
        self._hits += 1
        logger.debug("Cache hit (%s > %s), hit_count: %d", source_lang, target_lang, entry.hit_count)
        return entry.translation_text

    def store(self, text: str, source_lang: str, target_lang: str, translated: str) -> None:
        """Store a translation, overwriting any previous value for the same key.

        Args:
            text (str): Source text.
            source_lang (str): Source language code.
            target_lang (str): Target language code.
            translated (str): Translated text.
        """
        key: CacheKey = self.make_key(text, source_lang, target_lang)
        now: datetime = self._now()
        self._stores += 1

        entry: TranslationCacheEntry | None = self._entries.get(key)
        if entry is None:
            self._entries[key] = TranslationCacheEntry(
                key=key, translation_text=translated, created_at=now, last_used_at=now
            )
            logger.debug("Translation cached (%s > %s): '%s'", source_lang, target_lang, StringUtils.truncate(text))
        else:
            if entry.translation_text != translated:
                logger.debug("Overwriting cached translation (%s > %s)", source_lang, target_lang)
            entry.translation_text = translated
            entry.last_used_at = now
            self._entries.move_to_end(key)

        self._enforce_capacity_limit()

    def _enforce_capacity_limit(self) -> None:
        if self.max_entries <= 0:
            return
        while len(self._entries) > self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted LRU cache entry (%s > %s)", evicted_key.source_lang, evicted_key.target_lang)

    def entry(self, text: str, source_lang: str, target_lang: str) -> TranslationCacheEntry | None:
        """Return the raw entry without touching hit counters or recency."""
        return self._entries.get(self.make_key(text, source_lang, target_lang))

    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            total_entries=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            stores=self._stores,
            evictions=self._evictions,
            max_entries=self.max_entries,
        )

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        self._entries.clear()
        self._hits = self._misses = self._stores = self._evictions = 0
        logger.info("Translation cache cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 3:  # noqa: PLR2004
            return False
        text, source_lang, target_lang = key
        return self.make_key(text, source_lang, target_lang) in self._entries

    @staticmethod
    def _now() -> datetime:
        return datetime.now().astimezone()
