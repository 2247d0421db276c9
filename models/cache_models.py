"""Models for translation cache data.

Defines the cache key, cache entry and statistics dataclasses used by the in-memory translation cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from datetime import datetime

__all__: list[str] = [
    "CacheKey",
    "CacheStatistics",
    "TranslationCacheEntry",
]


class CacheKey(NamedTuple):
    """Exact-match key of a cached translation.

    Attributes:
        text (str): NFC-normalized source text.
        source_lang (str): Source language code.
        target_lang (str): Target language code.
    """

    text: str
    source_lang: str
    target_lang: str


@dataclass
class TranslationCacheEntry:
    """Translation cache entry data.

    Attributes:
        key (CacheKey): The (text, source, target) triple.
        translation_text (str): Translated text.
        created_at (datetime): First time the key was stored.
        last_used_at (datetime): Last store or lookup hit.
        hit_count (int): Number of lookup hits.
    """

    key: CacheKey
    translation_text: str
    created_at: datetime
    last_used_at: datetime
    hit_count: int = 0


@dataclass
class CacheStatistics:
    """Cache usage statistics.

    Attributes:
        total_entries (int): Entries currently held.
        hits (int): Lookups answered from the cache.
        misses (int): Lookups that found nothing.
        stores (int): Calls to ``store``.
        evictions (int): Entries dropped by the capacity bound.
        max_entries (int): Configured capacity, 0 for unbounded.
    """

    total_entries: int = 0
    hits: int = 0
    misses: int = 0
    stores: int = 0
    evictions: int = 0
    max_entries: int = 0

    @property
    def hit_ratio(self) -> float:
        lookups: int = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups
