"""Data models for VoiceFeed.

This package contains dataclass definitions for configuration, feed messages, translation payloads
and translation cache entries.
"""

from __future__ import annotations

from models.cache_models import CacheKey, CacheStatistics, TranslationCacheEntry
from models.config_models import Config
from models.message_models import Message, MessageValidationError, NewMessage
from models.translation_models import TranslationOutcome, TranslationRequest, TranslationResponse

__all__: list[str] = [
    "CacheKey",
    "CacheStatistics",
    "Config",
    "Message",
    "MessageValidationError",
    "NewMessage",
    "TranslationCacheEntry",
    "TranslationOutcome",
    "TranslationRequest",
    "TranslationResponse",
]
